"""Timeline export and charts."""
