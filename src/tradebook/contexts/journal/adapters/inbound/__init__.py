"""Journal inbound adapters."""
