"""Identity context: bearer-token authentication and internal API key gate."""
