"""Service layer: diff engine, thresholds, watch scheduler, profiles and webhooks."""
