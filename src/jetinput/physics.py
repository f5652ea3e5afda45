"""
Tower kinematics for jet inputs.

This module turns a tower's physical centre and calibrated energy into
a four-momentum pointing back to the event vertex, using NumPy so the
same code runs on single towers and on (Awkward) arrays of towers.
"""

import numpy as np
import awkward as ak


def build_four_vector(energy, center_x, center_y, center_z, center_radius, vertex_z):
    """
    Construct vertex-corrected four-vectors from tower positions.

    The tower is treated as a massless ray from the shifted vertex
    through its centre. E is the calibrated tower energy as given,
    it is not recomputed from the momentum.

    Parameters
    ----------
    energy : float or array-like
        Calibrated tower energy [GeV].
    center_x, center_y, center_z : float or array-like
        Tower centre [cm].
    center_radius : float or array-like
        Transverse distance of the tower centre from the beam axis [cm].
        Zero gives inf/NaN components, which are passed through.
    vertex_z : float
        Event vertex z [cm].

    Returns
    -------
    dict of arrays
        A dictionary with components 'E', 'px', 'py', 'pz', plus the
        intermediate 'eta' and 'phi'.
    """
    with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
        phi = np.arctan2(center_y, center_x)
        z_shifted = np.subtract(center_z, vertex_z)
        eta = np.arcsinh(np.divide(z_shifted, center_radius))

        pt = np.divide(energy, np.cosh(eta))
        px = pt * np.cos(phi)
        py = pt * np.sin(phi)
        pz = pt * np.sinh(eta)

    return {
        "E": energy,
        "px": px,
        "py": py,
        "pz": pz,
        "eta": eta,
        "phi": phi,
    }


def transform(tower, geometry, vertex_z):
    """
    Four-momentum (px, py, pz, E) of a single tower.

    Parameters
    ----------
    tower : TowerRecord
    geometry : TowerGeometry
    vertex_z : float

    Returns
    -------
    tuple of float
    """
    four = build_four_vector(
        np.float64(tower.energy),
        geometry.center_x,
        geometry.center_y,
        geometry.center_z,
        geometry.center_radius,
        vertex_z,
    )
    return (
        float(four["px"]),
        float(four["py"]),
        float(four["pz"]),
        float(four["E"]),
    )


def invariant_mass(E, px, py, pz):
    """
    Compute invariant mass m = sqrt(E^2 - |p|^2) with c = 1.

    Jet inputs keep the raw tower energy, so this is only zero up to
    rounding; it is used to monitor that convention.

    Parameters
    ----------
    E, px, py, pz : array-like
        Components of the four-vector(s), NumPy or Awkward arrays.

    Returns
    -------
    array-like
        Invariant mass values with the same structure as the inputs.
    """
    p2 = px**2 + py**2 + pz**2
    m2 = E**2 - p2
    # rounding can push massless vectors slightly negative
    m2 = ak.where(m2 < 0, 0, m2)
    return np.sqrt(m2)
