"""Exceptions raised while building scenes.

Scene construction problems are reported before any render starts. They are
fatal to starting a session but never to the process: callers catch
SceneBuildError, fix the description and build again.
"""


class SceneBuildError(ValueError):
    """A scene description cannot be turned into a renderable scene."""


class DegenerateGeometryError(SceneBuildError):
    """A primitive has zero area, zero radius, a zero normal or non-finite data."""


class InvalidMaterialError(SceneBuildError):
    """A material has invalid parameters or neither reflects nor emits light."""
