"""Reports module — attendance and leave aggregates."""
