"""HTTP service: scheduled signal job, server-setup feed and state sync."""

from levtrade.service.app import create_app

__all__ = ["create_app"]
