"""Central versioning and schema constants for the facet crawler."""

__all__ = ["__version__", "CONFIG_SCHEMA_VERSION"]

#: Semantic version of this codebase (bump using SemVer).
__version__ = "0.2.0"

#: Configuration schema version (increment if breaking changes to config format).
#: Version 2 replaced the link crawler's ``start_urls``/``max_depth`` with the
#: facet crawl fields (``start_url``, ``filter_groups``, ``output_dir``).
CONFIG_SCHEMA_VERSION = 2
