"""
Jet-input objects and their provenance tags.
"""

from dataclasses import dataclass

import vector


@dataclass(frozen=True)
class JetInput:
    """
    Four-momentum handed to the jet finder.

    provenance holds (selector, tower id) pairs; a freshly tagged
    input has exactly one.
    """

    px: float
    py: float
    pz: float
    e: float
    provenance: tuple = ()

    @property
    def pt(self):
        return float(self.to_vector().pt)

    @property
    def phi(self):
        return float(self.to_vector().phi)

    @property
    def eta(self):
        return float(self.to_vector().eta)

    def to_vector(self):
        """Return a vector.MomentumObject4D keeping E as stored."""
        return vector.obj(px=self.px, py=self.py, pz=self.pz, E=self.e)


def tag(selector, tower_id, momentum):
    """
    Wrap a (px, py, pz, E) tuple into a JetInput tagged with its tower.
    """
    px, py, pz, e = momentum
    return JetInput(px, py, pz, e, provenance=((selector, tower_id),))
