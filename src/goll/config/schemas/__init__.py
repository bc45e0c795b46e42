"""Settings sub-schemas."""
