"""Truncated multi-dimensional Fourier series over the N-torus."""
from __future__ import annotations

from typing import Sequence

import numpy as np

from ..exceptions import InputError


class FourierSeries:
    """
    Coefficients ``c_k`` of ``f(psi) = sum_k c_k exp(i k.psi)`` with
    ``|k_a| <= sizes[a]``, stored densely and centered; trailing array
    dimensions (matrix valued functions) are carried along.
    """

    def __init__(self, coefficients: np.ndarray, sizes: Sequence[int]) -> None:
        self.sizes = tuple(int(s) for s in sizes)
        self.coefficients = np.asarray(coefficients, dtype=complex)
        expected = tuple(2 * s + 1 for s in self.sizes)
        if self.coefficients.shape[:len(expected)] != expected:
            raise InputError(f"Fourier coefficients of shape {self.coefficients.shape} do not match sizes {self.sizes}")

    @property
    def dim(self) -> int:
        return len(self.sizes)

    @classmethod
    def from_samples(cls, samples, dim: int, sizes: Sequence[int], tolerance: float = 0.0) -> "FourierSeries":
        """
        Expand values sampled on the uniform grid ``2*pi*j/n`` of the first
        ``dim`` axes. Sizes are clipped to what the grid resolves; terms below
        ``tolerance`` times the largest one are pruned.
        """
        samples = np.asarray(samples, dtype=float)
        if samples.ndim < dim:
            raise InputError(f"samples of dimension {samples.ndim} cannot describe {dim} angles")
        axes = tuple(range(dim))
        transform = np.fft.fftn(samples, axes=axes) / np.prod(samples.shape[:dim])
        sizes = [min(int(s), (samples.shape[a] - 1) // 2) for a, s in enumerate(sizes)]
        for a, size in enumerate(sizes):
            index = np.arange(-size, size + 1) % samples.shape[a]
            transform = np.take(transform, index, axis=a)
        series = cls(transform, sizes)
        # round-off of the transform is always dropped
        series.prune(max(tolerance, 1.0e-12))
        return series

    @classmethod
    def constant(cls, value, dim: int) -> "FourierSeries":
        value = np.asarray(value, dtype=complex)
        return cls(value.reshape((1,) * dim + value.shape), (0,) * dim)

    def prune(self, tolerance: float) -> int:
        """Zero the terms below ``tolerance`` relative to the largest; return how many survive."""
        magnitude = np.abs(self.coefficients)
        if magnitude.ndim > self.dim:
            magnitude = magnitude.reshape(magnitude.shape[:self.dim] + (-1,)).max(axis=-1)
        small = magnitude < tolerance * magnitude.max()
        self.coefficients[small] = 0.0
        return int(np.count_nonzero(~small))

    def padded(self, sizes: Sequence[int]) -> "FourierSeries":
        sizes = tuple(max(int(s), own) for s, own in zip(sizes, self.sizes))
        width = [(t - s, t - s) for s, t in zip(self.sizes, sizes)] + [(0, 0)] * (self.coefficients.ndim - self.dim)
        return FourierSeries(np.pad(self.coefficients, width), sizes)

    def __add__(self, other: "FourierSeries") -> "FourierSeries":
        sizes = [max(a, b) for a, b in zip(self.sizes, other.sizes)]
        return FourierSeries(self.padded(sizes).coefficients + other.padded(sizes).coefficients, sizes)

    def __mul__(self, factor: float) -> "FourierSeries":
        return FourierSeries(self.coefficients * factor, self.sizes)

    __rmul__ = __mul__

    def support(self) -> np.ndarray:
        """Harmonic vectors ``k`` of the non-zero terms."""
        magnitude = np.abs(self.coefficients)
        if magnitude.ndim > self.dim:
            magnitude = magnitude.reshape(magnitude.shape[:self.dim] + (-1,)).max(axis=-1)
        return np.argwhere(magnitude > 0) - np.array(self.sizes)

    def derivative(self, orders: Sequence[int]) -> "FourierSeries":
        coefficients = self.coefficients.copy()
        for a, order in enumerate(orders):
            if order:
                k = np.arange(-self.sizes[a], self.sizes[a] + 1)
                shape = [1] * coefficients.ndim
                shape[a] = k.size
                coefficients = coefficients * ((1j * k) ** order).reshape(shape)
        return FourierSeries(coefficients, self.sizes)

    def on_grid(self, grid_sizes: Sequence[int]) -> np.ndarray:
        """Real values on the uniform grid with ``grid_sizes`` points per angle."""
        values = self.coefficients
        for a, (size, points) in enumerate(zip(self.sizes, grid_sizes)):
            angles = 2.0 * np.pi * np.arange(points) / points
            phases = np.exp(1j * np.outer(angles, np.arange(-size, size + 1)))
            values = np.moveaxis(np.tensordot(values, phases, axes=([a], [1])), -1, a)
        return values.real

    def __call__(self, angles) -> np.ndarray | float:
        """Real value at one angle vector."""
        angles = np.asarray(angles, dtype=float).ravel()
        if angles.size != self.dim:
            raise ValueError(f"{self.dim} angles expected, got {angles.size}")
        values = self.coefficients
        for size, angle in zip(self.sizes, angles):
            phases = np.exp(1j * angle * np.arange(-size, size + 1))
            values = np.tensordot(phases, values, axes=([0], [0]))
        values = np.real(values)
        return float(values) if np.ndim(values) == 0 else values

    def lookup(self, shifts: np.ndarray) -> np.ndarray:
        """Coefficients at integer harmonic vectors ``shifts[..., dim]``; zero outside the range."""
        index = shifts + np.array(self.sizes)
        inside = np.all((index >= 0) & (index <= 2 * np.array(self.sizes)), axis=-1)
        clipped = np.where(inside[..., None], index, 0)
        values = self.coefficients[tuple(clipped[..., a] for a in range(self.dim))]
        mask = inside.reshape(inside.shape + (1,) * (values.ndim - inside.ndim))
        return np.where(mask, values, 0.0)
