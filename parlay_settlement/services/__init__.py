"""Settlement services and score feeds."""
