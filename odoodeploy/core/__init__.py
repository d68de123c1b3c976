"""
odoodeploy Core

Configuration loading, file rendering, the default step plan and the
provisioning sequencer.
"""

from .sequencer import ProvisioningSequencer
from .steps import HostAdapters, build_steps

__all__ = [
    "ProvisioningSequencer",
    "HostAdapters",
    "build_steps",
]
