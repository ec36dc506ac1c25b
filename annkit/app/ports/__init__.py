"""Port interfaces for the annkit engine layer.

The handle and batch engine depend on these protocols, never on concrete
adapters.
"""

__all__ = [
    "MethodPort",
    "SpacePort",
]

from annkit.app.ports.method import MethodPort
from annkit.app.ports.space import SpacePort
