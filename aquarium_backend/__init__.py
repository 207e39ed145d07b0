"""Runtime services for the Calm Aquarium simulation.

This package provides the state container, snapshot persistence, the app
usage service and the composition root that drives the engine in
``aquarium_core``.
"""

__version__ = "1.0.0"
