"""Exception types raised by satglobe."""


class SatGlobeError(Exception):
    """Base class for satglobe errors."""


class AcquisitionError(SatGlobeError, RuntimeError):
    """The acquisition sequence failed as a whole (no batch was produced)."""


class ElementSetError(SatGlobeError, ValueError):
    """An element-set record could not be turned into a propagable handle."""


class CatalogError(SatGlobeError):
    """The satellite catalog could not be loaded."""
