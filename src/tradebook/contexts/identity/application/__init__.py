"""Identity application ports."""
