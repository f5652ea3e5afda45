import sys
import os

import pytest

# Absolute path to project root
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
SRC_PATH = os.path.join(PROJECT_ROOT, "src")

# Prepend src to sys.path so it overrides site-packages
sys.path.insert(0, SRC_PATH)
sys.path.insert(0, PROJECT_ROOT)


@pytest.fixture
def make_store():
    """
    Factory for an EventDataStore holding one tower source.

    towers: list of (id, energy); geometry: {id: (x, y, z, r)};
    vertices: list of z values, or None for no vertex collection.
    """
    from src.jetinput.sources import VERTEX_MAP_KEY
    from src.jetinput.store import (
        EventDataStore,
        TowerContainer,
        TowerGeometry,
        TowerGeometryContainer,
        TowerRecord,
        VertexCollection,
    )

    def _make(
        towers,
        geometry,
        vertices=(0.0,),
        tower_key="TOWER_CALIB_CEMC",
        geometry_key="TOWERGEOM_CEMC",
    ):
        store = EventDataStore()
        if towers is not None:
            store.put(tower_key, TowerContainer(TowerRecord(i, e) for i, e in towers))
        if geometry is not None:
            store.put(
                geometry_key,
                TowerGeometryContainer(
                    {i: TowerGeometry(*values) for i, values in geometry.items()}
                ),
            )
        if vertices is not None:
            store.put(VERTEX_MAP_KEY, VertexCollection.from_z(list(vertices)))
        return store

    return _make
