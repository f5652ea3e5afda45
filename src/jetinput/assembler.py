"""
Build the per-event list of tower jet inputs.

TowerJetInput ties the pieces together for one tower source:

  1. Resolve the tower and geometry container keys for the selector.
  2. Fetch both containers from the event store.
  3. Resolve and validate the event vertex.
  4. Turn every tower into a vertex-corrected four-momentum,
     tag it with (selector, tower id) and collect it in tower order.

Recoverable problems give an empty list, fatal ones propagate.
"""

import logging

from src.jetinput import sources
from src.jetinput.errors import (
    MissingDataProduct,
    MissingGeometryForTower,
    RecoverableJetInputError,
)
from src.jetinput.physics import transform
from src.jetinput.provenance import tag
from src.jetinput.store import TowerContainer, TowerGeometryContainer
from src.jetinput.towers import enumerate_towers
from src.jetinput.vertex import WarnOnce, resolve_vertex

logger = logging.getLogger(__name__)


class TowerJetInput:
    """
    Jet-input builder for one calorimeter tower source.

    Parameters
    ----------
    selector : InputSelector
        Tower source, fixed for the lifetime of the builder. Plain ints
        are converted to the matching InputSelector.
    verbosity : int
        Log entry/exit of get_input at INFO level when > 0.
    warn_once : WarnOnce, optional
        Limiter for the invalid-vertex warning. A private one is
        created if not given.
    table : dict, optional
        Source registry to use instead of sources.SOURCE_TABLE.
    """

    def __init__(self, selector, verbosity=0, warn_once=None, table=None):
        self.selector = sources.as_selector(selector)
        self.verbosity = verbosity
        self.warn_once = warn_once if warn_once is not None else WarnOnce()
        self._table = table

    def identify(self):
        try:
            description = sources.describe(self.selector, self._table)
        except RecoverableJetInputError:
            description = f"unknown source {self.selector!r}"
        return f"TowerJetInput: {description}"

    def __repr__(self):
        return f"TowerJetInput({self.selector!r})"

    def get_input(self, store):
        """
        Jet inputs for one event.

        Parameters
        ----------
        store : EventDataStore
            Products of the event being processed.

        Returns
        -------
        list of JetInput
            One entry per tower, in tower order. Empty when the source is
            unknown, a container is missing or the vertex is unusable.

        Raises
        ------
        MissingVertexCollection, MissingGeometryForTower
            Pipeline misconfiguration.
        """
        if self.verbosity > 0:
            logger.info("TowerJetInput::get_input -- entered")

        try:
            jets = self._build(store)
        except RecoverableJetInputError as e:
            logger.debug("%s: no inputs this event (%s)", self.identify(), e)
            jets = []

        if self.verbosity > 0:
            logger.info("TowerJetInput::get_input -- exited with %d inputs", len(jets))
        return jets

    def _build(self, store):
        tower_key, geom_key = sources.resolve(self.selector, self._table)

        towers = store.lookup(tower_key, TowerContainer)
        if towers is None:
            raise MissingDataProduct(tower_key)
        geom = store.lookup(geom_key, TowerGeometryContainer)
        if geom is None:
            raise MissingDataProduct(geom_key)

        vtxz = resolve_vertex(store, self.warn_once)

        jets = []
        for tower in enumerate_towers(towers):
            tower_geom = geom.lookup(tower.id)
            if tower_geom is None:
                raise MissingGeometryForTower(tower.id, geom_key)
            momentum = transform(tower, tower_geom, vtxz)
            jets.append(tag(self.selector, tower.id, momentum))
        return jets
