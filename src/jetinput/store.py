"""
Per-event data products consumed by the jet-input builder.

EventDataStore is a keyed lookup of whatever products an event carries.
Towers, tower geometry and vertices are simple read-only containers
that can be filled from NumPy or Awkward arrays.
"""

from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True)
class TowerRecord:
    """One calibrated tower: detector key and energy [GeV]."""

    id: int
    energy: float


@dataclass(frozen=True)
class TowerGeometry:
    """Physical centre of a tower in detector coordinates [cm]."""

    center_x: float
    center_y: float
    center_z: float
    center_radius: float


@dataclass(frozen=True)
class GlobalVertex:
    z: float
    x: float = float("nan")
    y: float = float("nan")


class TowerContainer:
    """
    Calibrated towers of one event, iterated in insertion order.
    """

    def __init__(self, towers=()):
        self._towers = list(towers)

    @classmethod
    def from_arrays(cls, ids, energies):
        ids = np.asarray(ids, dtype=np.int64)
        energies = np.asarray(energies, dtype=np.float64)
        if ids.shape != energies.shape:
            raise ValueError(
                f"ids and energies differ in shape: {ids.shape} vs {energies.shape}"
            )
        return cls(TowerRecord(int(i), float(e)) for i, e in zip(ids, energies))

    def __iter__(self):
        return iter(self._towers)

    def __len__(self):
        return len(self._towers)


class TowerGeometryContainer:
    """
    Static map from tower id to TowerGeometry.
    """

    def __init__(self, geometries=None):
        self._geometries = dict(geometries or {})

    @classmethod
    def from_arrays(cls, ids, center_x, center_y, center_z, center_radius):
        columns = [
            np.asarray(c, dtype=np.float64)
            for c in (center_x, center_y, center_z, center_radius)
        ]
        ids = np.asarray(ids, dtype=np.int64)
        return cls(
            {
                int(i): TowerGeometry(*(float(v) for v in values))
                for i, *values in zip(ids, *columns)
            }
        )

    def lookup(self, tower_id):
        return self._geometries.get(tower_id)

    def __contains__(self, tower_id):
        return tower_id in self._geometries

    def __len__(self):
        return len(self._geometries)


class VertexCollection:
    """
    Reconstructed vertices of one event in their native order.
    """

    def __init__(self, vertices=()):
        self._vertices = list(vertices)

    @classmethod
    def from_z(cls, z_values):
        return cls(GlobalVertex(float(z)) for z in np.asarray(z_values, dtype=np.float64))

    def __iter__(self):
        return iter(self._vertices)

    def __len__(self):
        return len(self._vertices)


class EventDataStore:
    """
    Keyed store of one event's data products.

    Absence is a normal outcome: lookup returns None instead of raising.
    """

    def __init__(self, products=None):
        self._products = dict(products or {})

    def put(self, key, obj):
        self._products[key] = obj

    def lookup(self, key, kind=None):
        """
        Return the product stored under key, or None.

        If kind is given, a product of any other type also gives None.
        """
        obj = self._products.get(key)
        if obj is None:
            return None
        if kind is not None and not isinstance(obj, kind):
            return None
        return obj

    def keys(self):
        return list(self._products.keys())

    def __contains__(self, key):
        return key in self._products
