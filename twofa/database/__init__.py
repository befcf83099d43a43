"""JSON account store."""
