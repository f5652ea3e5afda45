"""
Calorimeter tower sources that can feed the jet finder.

Each selector maps to the pair of data-product keys it needs:
the calibrated tower container and the geometry container
describing where those towers sit.
"""

from enum import IntEnum

from src.jetinput.errors import UnknownSource


VERTEX_MAP_KEY = "GlobalVertexMap"


class InputSelector(IntEnum):
    """Enumerates the tower containers usable as jet inputs."""

    CEMC_TOWER = 1
    HCALIN_TOWER = 2
    HCALOUT_TOWER = 3
    FEMC_TOWER = 4
    FHCAL_TOWER = 5
    CEMC_TOWER_SUB1 = 6
    HCALIN_TOWER_SUB1 = 7
    HCALOUT_TOWER_SUB1 = 8

    @classmethod
    def from_name(cls, name):
        """
        Parse a selector from its configuration name, e.g. "cemc_tower".
        """
        if isinstance(name, cls):
            return name
        try:
            return cls[str(name).upper()]
        except KeyError:
            raise UnknownSource(name) from None


# selector -> (tower container key, geometry container key)
SOURCE_TABLE = {
    InputSelector.CEMC_TOWER: ("TOWER_CALIB_CEMC", "TOWERGEOM_CEMC"),
    InputSelector.HCALIN_TOWER: ("TOWER_CALIB_HCALIN", "TOWERGEOM_HCALIN"),
    InputSelector.HCALOUT_TOWER: ("TOWER_CALIB_HCALOUT", "TOWERGEOM_HCALOUT"),
    InputSelector.FEMC_TOWER: ("TOWER_CALIB_FEMC", "TOWERGEOM_FEMC"),
    InputSelector.FHCAL_TOWER: ("TOWER_CALIB_FHCAL", "TOWERGEOM_FHCAL"),
    # EMCal retowered onto the inner HCal grid
    InputSelector.CEMC_TOWER_SUB1: (
        "TOWER_CALIB_CEMC_RETOWER_SUB1",
        "TOWERGEOM_HCALIN",
    ),
    InputSelector.HCALIN_TOWER_SUB1: ("TOWER_CALIB_HCALIN_SUB1", "TOWERGEOM_HCALIN"),
    InputSelector.HCALOUT_TOWER_SUB1: (
        "TOWER_CALIB_HCALOUT_SUB1",
        "TOWERGEOM_HCALOUT",
    ),
}


def as_selector(selector):
    """
    Return the InputSelector matching a plain int, or the value unchanged.

    Values that are not a known selector are left as given so that
    resolve() reports them as UnknownSource.
    """
    if isinstance(selector, InputSelector):
        return selector
    if isinstance(selector, int) and not isinstance(selector, bool):
        try:
            return InputSelector(selector)
        except ValueError:
            return selector
    return selector


def resolve(selector, table=None):
    """
    Look up the container keys for a tower source.

    Parameters
    ----------
    selector : InputSelector
        Tower source to resolve.
    table : dict, optional
        Registry to use instead of SOURCE_TABLE.

    Returns
    -------
    tuple of str
        (tower container key, geometry container key).

    Raises
    ------
    UnknownSource
        If the selector has no registry row.
    """
    if table is None:
        table = SOURCE_TABLE
    try:
        return table[selector]
    except (KeyError, TypeError):
        raise UnknownSource(selector) from None


def describe(selector, table=None):
    """
    One-line description of where a selector reads its towers from.
    """
    tower_key, _ = resolve(selector, table)
    name = getattr(selector, "name", selector)
    return f"{tower_key} to Jet::{name}"
