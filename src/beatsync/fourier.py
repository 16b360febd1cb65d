"""Discrete and fast Fourier transforms.

``dft``/``inverse_dft`` are direct O(n^2) references used to verify the
radix-2 ``fft``. The FFT works in place on separate real/imaginary arrays and
derives every stage's twiddle factors from the previous stage by half-angle
rotation, so no sine or cosine is evaluated inside the transform.
"""

from __future__ import annotations

import math

import numpy as np

FORWARD = -1
INVERSE = 1


def dft(signal: np.ndarray) -> np.ndarray:
    """Direct DFT, ``F(k) = 1/sqrt(N) * sum_n x[n] * exp(-2j*pi*n*k/N)``."""
    x = np.asarray(signal, dtype=np.complex128)
    n = x.size
    if n == 0:
        return x.copy()
    k = np.arange(n)
    basis = np.exp(-2j * np.pi * np.outer(k, k) / n)
    return basis @ x / math.sqrt(n)


def inverse_dft(spectrum: np.ndarray) -> np.ndarray:
    """Direct inverse of :func:`dft` (same 1/sqrt(N) scaling)."""
    X = np.asarray(spectrum, dtype=np.complex128)
    n = X.size
    if n == 0:
        return X.copy()
    k = np.arange(n)
    basis = np.exp(2j * np.pi * np.outer(k, k) / n)
    return basis @ X / math.sqrt(n)


def bit_reverse_indices(m: int) -> np.ndarray:
    """Permutation mapping each index of a 2**m array to its bit-reversed index."""
    idx = np.arange(1 << m)
    rev = np.zeros_like(idx)
    for bit in range(m):
        rev |= ((idx >> bit) & 1) << (m - 1 - bit)
    return rev


def fft(direction: int, m: int, real: np.ndarray, imag: np.ndarray) -> None:
    """In-place radix-2 Cooley-Tukey transform of ``real + 1j*imag``.

    Args:
        direction: ``FORWARD`` (-1, unscaled) or ``INVERSE`` (+1, scaled by 1/N).
        m: log2 of the transform length.
        real, imag: 1D float arrays of length exactly ``2**m``; overwritten.
    """
    n = 1 << m
    if len(real) != n or len(imag) != n:
        raise ValueError(f"fft of order {m} needs arrays of length {n}")
    if direction not in (FORWARD, INVERSE):
        raise ValueError(f"direction must be {FORWARD} or {INVERSE}")

    rev = bit_reverse_indices(m)
    xr = np.asarray(real, dtype=np.float64)[rev]
    xi = np.asarray(imag, dtype=np.float64)[rev]

    # Stage twiddles are powers of (c1, c2); the first stage only needs w^0.
    c1, c2 = -1.0, 0.0
    wr = np.ones(1)
    wi = np.zeros(1)
    l2 = 1
    for _ in range(m):
        l1 = l2
        l2 <<= 1
        br = xr.reshape(-1, l2)
        bi = xi.reshape(-1, l2)
        top_r = br[:, :l1].copy()
        top_i = bi[:, :l1].copy()
        t1 = wr * br[:, l1:] - wi * bi[:, l1:]
        t2 = wr * bi[:, l1:] + wi * br[:, l1:]
        br[:, l1:] = top_r - t1
        bi[:, l1:] = top_i - t2
        br[:, :l1] = top_r + t1
        bi[:, :l1] = top_i + t2

        c2 = math.sqrt((1.0 - c1) / 2.0)
        if direction == FORWARD:
            c2 = -c2
        c1 = math.sqrt((1.0 + c1) / 2.0)
        # w'^(2k) = w^k and w'^(2k+1) = w^k * c'
        nr = np.empty(l2)
        ni = np.empty(l2)
        nr[0::2] = wr
        ni[0::2] = wi
        nr[1::2] = wr * c1 - wi * c2
        ni[1::2] = wr * c2 + wi * c1
        wr, wi = nr, ni

    if direction == INVERSE:
        xr /= n
        xi /= n
    real[:] = xr
    imag[:] = xi
