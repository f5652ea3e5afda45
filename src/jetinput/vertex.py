"""
Event vertex lookup for the pseudorapidity correction.
"""

import logging
import math

from src.jetinput.errors import InvalidVertex, MissingVertexCollection
from src.jetinput.sources import VERTEX_MAP_KEY
from src.jetinput.store import VertexCollection

logger = logging.getLogger(__name__)


class WarnOnce:
    """
    Emit a log message the first time it is called, then stay quiet.

    One instance per pipeline so tests and parallel pipelines each
    get their own flag.
    """

    def __init__(self):
        self._fired = False

    @property
    def fired(self):
        return self._fired

    def __call__(self, log, msg, *args):
        """Log msg as a warning unless it was already emitted. Returns True if logged."""
        if self._fired:
            return False
        self._fired = True
        log.warning(msg, *args)
        return True

    def reset(self):
        self._fired = False


def resolve_vertex(store, warn_once=None, key=VERTEX_MAP_KEY):
    """
    Return the z coordinate of the event vertex.

    The first vertex of the collection is used; with several vertices
    the choice is whatever order the collection was filled in.

    Parameters
    ----------
    store : EventDataStore
        Event products.
    warn_once : WarnOnce, optional
        Limiter for the non-finite vertex warning.
    key : str
        Vertex collection key.

    Returns
    -------
    float
        Vertex z [cm].

    Raises
    ------
    MissingVertexCollection
        No vertex collection in the event (fatal).
    InvalidVertex
        The collection is empty or the vertex z is not finite.
    """
    vertices = store.lookup(key, VertexCollection)
    if vertices is None:
        raise MissingVertexCollection(key)

    vertex = next(iter(vertices), None)
    if vertex is None:
        raise InvalidVertex(f"{key} holds no vertex")

    vtxz = vertex.z
    if not math.isfinite(vtxz):
        if warn_once is not None:
            warn_once(
                logger,
                "vertex is NaN. Drop all tower inputs "
                "(further NaN-vertex warnings will be suppressed).",
            )
        raise InvalidVertex(f"vertex z is not finite: {vtxz}")

    return vtxz
