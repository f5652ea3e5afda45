"""
Exceptions raised while building tower jet inputs.

Recoverable errors mean "no jet inputs for this event" and are turned
into an empty result by TowerJetInput. Fatal errors point at a broken
pipeline configuration and always propagate to the caller.

Errors carrying fields keep them in `args` and format the message in
`__str__`, so they survive pickling across worker processes.
"""


class JetInputError(Exception):
    """Base class for all jet-input errors."""


class RecoverableJetInputError(JetInputError):
    """The event yields no jet inputs, processing continues."""


class FatalJetInputError(JetInputError, RuntimeError):
    """The run must stop: continuing would produce wrong momenta."""


class UnknownSource(RecoverableJetInputError):
    """Raised when a selector has no row in the source registry."""

    def __init__(self, selector):
        super().__init__(selector)
        self.selector = selector

    def __str__(self):
        return f"Unknown tower source: {self.selector!r}"


class MissingDataProduct(RecoverableJetInputError):
    """Raised when a tower or geometry container is absent from the event."""

    def __init__(self, key):
        super().__init__(key)
        self.key = key

    def __str__(self):
        return f"Data product {self.key!r} is missing"


class InvalidVertex(RecoverableJetInputError):
    """Raised when the event vertex is absent or has a non-finite z."""


class MissingVertexCollection(FatalJetInputError):
    """Raised when the event carries no vertex collection at all."""

    def __init__(self, key):
        super().__init__(key)
        self.key = key

    def __str__(self):
        return (
            f"{self.key} node is missing. Turn on global vertex reconstruction "
            "in the upstream chain."
        )


class MissingGeometryForTower(FatalJetInputError):
    """Raised when a tower id has no entry in the geometry container."""

    def __init__(self, tower_id, geometry_key=None):
        super().__init__(tower_id, geometry_key)
        self.tower_id = tower_id
        self.geometry_key = geometry_key

    def __str__(self):
        where = f" in {self.geometry_key}" if self.geometry_key else ""
        return f"No geometry{where} for tower id {self.tower_id}"
