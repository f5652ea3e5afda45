"""
I/O utilities for reading calorimeter towers and vertices with uproot
"""

import numpy as np
import uproot
import awkward as ak

from src.jetinput.sources import VERTEX_MAP_KEY
from src.jetinput.store import (
    EventDataStore,
    TowerContainer,
    TowerGeometryContainer,
    VertexCollection,
)


EVENT_TREE = "T"
VERTEX_BRANCH = f"{VERTEX_MAP_KEY}_z"
GEOMETRY_BRANCHES = ["id", "center_x", "center_y", "center_z", "center_radius"]


def tower_branches(tower_key):
    """Branch names holding a tower container: ids and energies."""
    return [f"{tower_key}_id", f"{tower_key}_energy"]


def _find_tree(file, name=EVENT_TREE):
    """
    Detect the event TTree inside the ROOT file.

    Logic:
    1. If `name` exists, use it.
    2. Otherwise, search for exactly one TTree.
    3. Otherwise, search for a TTree inside subdirectories.
    """
    # Direct match
    if name in file.keys():
        return file[name]

    # Match with ';1' versioning
    if f"{name};1" in file.keys():
        return file[f"{name};1"]

    # If there is exactly one TTree in the root file:
    tt_keys = [k for k, v in file.classnames().items() if v == "TTree"]
    if len(tt_keys) == 1:
        return file[tt_keys[0]]

    # Search inside directories
    for key in file.keys():
        obj = file[key]
        if not hasattr(obj, "keys"):
            continue
        for subkey in obj.keys():
            full = f"{key}/{subkey}"
            if getattr(file[full], "classname", None) == "TTree":
                return file[full]

    raise RuntimeError(f"No TTree found in file {file.file_path}")


def load_events(filename, branches):
    """
    Load the requested branches that exist in the event tree.

    Branches missing from the file are left out, so the matching
    data products are absent from the events built from them.
    """
    with uproot.open(filename) as f:
        tree = _find_tree(f)
        available = [b for b in branches if b in tree.keys()]
        if not available:
            return ak.Array([])
        arrays = tree.arrays(available, library="ak")

    return arrays


def load_geometry(filename, geometry_key):
    """
    Read one tower geometry table, or None if the file does not have it.
    """
    with uproot.open(filename) as f:
        if geometry_key not in f.keys() and f"{geometry_key};1" not in f.keys():
            return None
        table = f[geometry_key].arrays(GEOMETRY_BRANCHES, library="np")

    return TowerGeometryContainer.from_arrays(
        table["id"],
        table["center_x"],
        table["center_y"],
        table["center_z"],
        table["center_radius"],
    )


def event_stores(arrays, tower_keys, geometries):
    """
    Yield one EventDataStore per event.

    Parameters
    ----------
    arrays : ak.Array
        Per-event records as returned by load_events.
    tower_keys : iterable of str
        Tower containers to attach when both their branches are present.
    geometries : dict
        Geometry key -> TowerGeometryContainer, shared by every event.
        None values are skipped.
    """
    fields = set(ak.fields(arrays))
    present = [
        key for key in tower_keys if all(b in fields for b in tower_branches(key))
    ]

    for event in arrays:
        store = EventDataStore(
            {key: geom for key, geom in geometries.items() if geom is not None}
        )
        for key in present:
            id_branch, energy_branch = tower_branches(key)
            store.put(
                key,
                TowerContainer.from_arrays(
                    np.asarray(ak.to_numpy(event[id_branch])),
                    np.asarray(ak.to_numpy(event[energy_branch])),
                ),
            )
        if VERTEX_BRANCH in fields:
            store.put(
                VERTEX_MAP_KEY,
                VertexCollection.from_z(ak.to_numpy(event[VERTEX_BRANCH])),
            )
        yield store
