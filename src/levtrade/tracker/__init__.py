"""Raw-signal accuracy tracking: records, outcomes and hit-rate statistics."""
