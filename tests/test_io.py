import numpy as np
import pytest
pytest.importorskip("uproot")
ak = pytest.importorskip("awkward")
from src.jetinput import io
from src.jetinput.store import TowerContainer, TowerGeometryContainer, VertexCollection

class DummyTree:
    classname = "TTree"

class DummyFileNamed:
    # Mimic a ROOT file that has a 'T' event tree

    def __init__(self):
        self._store = {"T": DummyTree(), "TOWERGEOM_CEMC": DummyTree()}
        self.file_path = "dummy.root"

    def keys(self):
        return list(self._store.keys())

    def __getitem__(self, key):
        return self._store[key]

    def classnames(self):
        return {name: obj.classname for name, obj in self._store.items()}

class DummyFileUnique:
    # Mimic a ROOT file with exactly one TTree at the top level

    def __init__(self):
        self._store = {"events": DummyTree()}
        self.file_path = "unique.root"

    def keys(self):
        return list(self._store.keys())

    def __getitem__(self, key):
        return self._store[key]

    def classnames(self):
        return {name: obj.classname for name, obj in self._store.items()}

class DummyDir:
    def __init__(self, children):
        self._children = children

    def keys(self):
        return list(self._children.keys())

    def __getitem__(self, key):
        return self._children[key]

class DummyFileNested:
    # Mimic a ROOT file where the TTree lives inside a directory

    def __init__(self):
        tree = DummyTree()
        self.file_path = "nested.root"
        self._store = {
            "dir1": DummyDir({"subtree": tree}),
            "dir1/subtree": tree,
        }

    def keys(self):
        # Only top-level keys, like uproot
        return [k for k in self._store.keys() if "/" not in k]

    def __getitem__(self, key):
        return self._store[key]

    def classnames(self):
        return {}

class DummyFileEmpty(DummyFileNested):
    def __init__(self):
        self.file_path = "empty.root"
        self._store = {"dir1": DummyDir({})}

class DummyGeometryTree:
    def __init__(self, table):
        self._table = table

    def arrays(self, branches, library="np"):
        return {b: self._table[b] for b in branches}

class DummyGeometryFile:
    # Context-managed file holding one geometry table

    def __init__(self, tables):
        self._tables = tables

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def keys(self):
        return [f"{k};1" for k in self._tables]

    def __getitem__(self, key):
        return DummyGeometryTree(self._tables[key])

def test_find_tree_prefers_event_tree_name():
    f = DummyFileNamed()
    tree = io._find_tree(f)
    assert tree is f["T"]

def test_find_tree_unique_ttree_via_classnames():
    f = DummyFileUnique()
    tree = io._find_tree(f)
    assert isinstance(tree, DummyTree)

def test_find_tree_nested_directory_search():
    f = DummyFileNested()
    tree = io._find_tree(f)
    assert isinstance(tree, DummyTree)

def test_find_tree_raises_when_no_tree():
    with pytest.raises(RuntimeError, match="empty.root"):
        io._find_tree(DummyFileEmpty())

def test_tower_branches():
    assert io.tower_branches("TOWER_CALIB_CEMC") == [
        "TOWER_CALIB_CEMC_id",
        "TOWER_CALIB_CEMC_energy",
    ]

def test_load_geometry_reads_table(monkeypatch):
    table = {
        "id": np.array([1, 2]),
        "center_x": np.array([100.0, 0.0]),
        "center_y": np.array([0.0, 100.0]),
        "center_z": np.array([10.0, -10.0]),
        "center_radius": np.array([100.0, 100.0]),
    }
    monkeypatch.setattr(
        io.uproot, "open", lambda _f: DummyGeometryFile({"TOWERGEOM_CEMC": table})
    )

    geom = io.load_geometry("geom.root", "TOWERGEOM_CEMC")

    assert isinstance(geom, TowerGeometryContainer)
    assert len(geom) == 2
    assert geom.lookup(2).center_y == 100.0
    assert geom.lookup(3) is None

def test_load_geometry_missing_table_returns_none(monkeypatch):
    monkeypatch.setattr(io.uproot, "open", lambda _f: DummyGeometryFile({}))
    assert io.load_geometry("geom.root", "TOWERGEOM_HCALIN") is None

def test_event_stores_attach_present_products():
    arrays = ak.Array(
        {
            "TOWER_CALIB_CEMC_id": [[5, 1], [], [9]],
            "TOWER_CALIB_CEMC_energy": [[1.5, 2.5], [], [0.5]],
            "GlobalVertexMap_z": [[0.0, 3.0], [1.0], [np.nan]],
        }
    )
    geom = TowerGeometryContainer.from_arrays([1], [1.0], [0.0], [0.0], [1.0])

    stores = list(
        io.event_stores(
            arrays,
            ["TOWER_CALIB_CEMC", "TOWER_CALIB_HCALIN"],
            {"TOWERGEOM_CEMC": geom, "TOWERGEOM_HCALIN": None},
        )
    )

    assert len(stores) == 3
    first = stores[0]
    towers = first.lookup("TOWER_CALIB_CEMC", TowerContainer)
    assert [(t.id, t.energy) for t in towers] == [(5, 1.5), (1, 2.5)]
    assert first.lookup("TOWER_CALIB_HCALIN") is None
    assert first.lookup("TOWERGEOM_CEMC") is geom
    assert "TOWERGEOM_HCALIN" not in first

    vertices = first.lookup("GlobalVertexMap", VertexCollection)
    assert [v.z for v in vertices] == [0.0, 3.0]

    assert len(stores[1].lookup("TOWER_CALIB_CEMC")) == 0
    assert np.isnan(next(iter(stores[2].lookup("GlobalVertexMap"))).z)

def test_event_stores_without_vertex_branch():
    arrays = ak.Array(
        {
            "TOWER_CALIB_CEMC_id": [[5]],
            "TOWER_CALIB_CEMC_energy": [[1.5]],
        }
    )
    (store,) = io.event_stores(arrays, ["TOWER_CALIB_CEMC"], {})
    assert "GlobalVertexMap" not in store
    assert "TOWER_CALIB_CEMC" in store
