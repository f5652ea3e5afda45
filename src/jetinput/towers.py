"""
Tower enumeration for one event.
"""


def enumerate_towers(container):
    """
    Yield every TowerRecord of a tower container.

    No energy cut is applied, negative and zero energy towers are kept.
    The order is the container's own iteration order, which is stable
    but carries no geometric meaning.
    """
    for tower in container:
        yield tower
