"""skillgen — incremental content generation for a plugin and skill gallery site."""
