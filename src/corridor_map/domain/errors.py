# corridor_map/domain/errors.py


class CorridorMapError(Exception):
    """Base class for every error raised by corridor_map."""


class InvalidGeometryError(CorridorMapError, ValueError):
    """Malformed construction input: inverted rectangle, degenerate obstacle, qhull failure."""


class UnboundedInputError(CorridorMapError):
    """The Voronoi producer handed over an infinite edge or a broken twin pairing."""


class GraphInvariantError(CorridorMapError):
    """The graph broke one of its own structural contracts (twins, adjacency, indices, winding)."""


class MixedRadiusError(CorridorMapError, ValueError):
    """Agents with different radii were submitted to the same group request."""


class IncrementalUpdateError(CorridorMapError):
    """An obstacle could not be patched in and a full rebuild was not allowed."""
