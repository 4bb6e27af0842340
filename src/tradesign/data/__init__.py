"""Market data records and tabular input schema."""
