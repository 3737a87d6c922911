"""Source discovery: plugin, skill and diagram units."""

from skillgen.sources.reader import DiscoveryResult, SourceRootError, read_sources

__all__ = ["DiscoveryResult", "SourceRootError", "read_sources"]
