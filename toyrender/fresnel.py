"""Fresnel reflectance for dielectrics and conductors."""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from typing import Sequence

import numpy as np


def fr_dielectric(cos_theta_i: float, eta_i: float, eta_t: float) -> float:
    """Unpolarised Fresnel reflectance at a dielectric interface."""
    cos_theta_i = min(max(float(cos_theta_i), -1.0), 1.0)
    if cos_theta_i <= 0.0:
        eta_i, eta_t = eta_t, eta_i
        cos_theta_i = abs(cos_theta_i)

    sin_theta_i = math.sqrt(max(0.0, 1.0 - cos_theta_i * cos_theta_i))
    sin_theta_t = eta_i / eta_t * sin_theta_i
    if sin_theta_t >= 1.0:
        return 1.0
    cos_theta_t = math.sqrt(max(0.0, 1.0 - sin_theta_t * sin_theta_t))

    r_parl = (eta_t * cos_theta_i - eta_i * cos_theta_t) / (
        eta_t * cos_theta_i + eta_i * cos_theta_t
    )
    r_perp = (eta_i * cos_theta_i - eta_t * cos_theta_t) / (
        eta_i * cos_theta_i + eta_t * cos_theta_t
    )
    return (r_parl * r_parl + r_perp * r_perp) / 2.0


def fr_conductor(
    cos_theta_i: float,
    eta_i: Sequence[float],
    eta_t: Sequence[float],
    k: Sequence[float],
) -> np.ndarray:
    """Per-channel Fresnel reflectance at a conductor interface."""
    cos_theta_i = min(max(float(cos_theta_i), -1.0), 1.0)
    eta_i = np.asarray(eta_i, dtype=np.float64)
    eta = np.asarray(eta_t, dtype=np.float64) / eta_i
    etak = np.asarray(k, dtype=np.float64) / eta_i

    cos2 = cos_theta_i * cos_theta_i
    sin2 = 1.0 - cos2
    eta2 = eta * eta
    etak2 = etak * etak

    t0 = eta2 - etak2 - sin2
    a2plusb2 = np.sqrt(t0 * t0 + 4.0 * eta2 * etak2)
    t1 = a2plusb2 + cos2
    a = np.sqrt(0.5 * (a2plusb2 + t0))
    t2 = 2.0 * cos_theta_i * a
    rs = (t1 - t2) / (t1 + t2)

    t3 = cos2 * a2plusb2 + sin2 * sin2
    t4 = t2 * sin2
    rp = rs * (t3 - t4) / (t3 + t4)

    return 0.5 * (rp + rs)


class Fresnel(ABC):
    """Reflectance as a function of the incident cosine."""

    @abstractmethod
    def evaluate(self, cos_theta_i: float) -> np.ndarray:
        """RGB reflectance for the given incident cosine."""


class FresnelConductor(Fresnel):
    """Fresnel term of a conductor with complex index of refraction."""

    def __init__(self, eta_i, eta_t, k) -> None:
        self.eta_i = np.asarray(eta_i, dtype=np.float64)
        self.eta_t = np.asarray(eta_t, dtype=np.float64)
        self.k = np.asarray(k, dtype=np.float64)

    def evaluate(self, cos_theta_i: float) -> np.ndarray:
        return fr_conductor(abs(cos_theta_i), self.eta_i, self.eta_t, self.k)


class FresnelDielectric(Fresnel):
    """Fresnel term of a dielectric interface."""

    def __init__(self, eta_i: float, eta_t: float) -> None:
        self.eta_i = float(eta_i)
        self.eta_t = float(eta_t)

    def evaluate(self, cos_theta_i: float) -> np.ndarray:
        return np.full(3, fr_dielectric(cos_theta_i, self.eta_i, self.eta_t))


class FresnelNoOp(Fresnel):
    """Fresnel term that reflects everything."""

    def evaluate(self, cos_theta_i: float) -> np.ndarray:
        return np.ones(3)