"""Calendar Copilot: natural-language calendar assistant API."""
