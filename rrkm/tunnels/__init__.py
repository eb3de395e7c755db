"""Barrier tunneling models."""
from __future__ import annotations

from .eckart import EckartTunnel
from .harmonic import HarmonicTunnel
from .quartic import QuarticTunnel
from .read import ReadTunnel
from .tunnel import Tunnel

__all__ = ["EckartTunnel", "HarmonicTunnel", "QuarticTunnel", "ReadTunnel", "Tunnel"]
