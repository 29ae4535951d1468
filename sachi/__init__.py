"""
SACHI Sound Listener

Real-time sound classification that combines a pretrained audio model
with few-shot custom labels, estimates a coarse stereo direction and keeps
a deduplicated detection log.
"""

__version__ = "1.2.0"
__author__ = "SACHI Team"
