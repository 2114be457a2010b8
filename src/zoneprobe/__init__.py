"""zoneprobe - cloud capacity probe

Philosophy:
- Ruthless simplicity
- Brick architecture (self-contained modules)
- Leave nothing behind (every run tears down what it created)
- Fail fast with helpful guidance

The zoneprobe CLI answers "can I actually get N machines of size S in
region R right now" by provisioning a batch of VMs across a region's zones,
counting what succeeded and failed, and deleting everything afterwards.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
