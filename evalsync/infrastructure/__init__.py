"""Infrastructure: request cache and webhook API access."""
