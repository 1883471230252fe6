"""AI Wave Rider API."""
