"""Scattering functions (BxDFs) and their combination into a BSDF."""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import IntFlag
from typing import Optional, Protocol, Sequence

import numpy as np

from .fresnel import Fresnel, FresnelDielectric, fr_dielectric
from .intersect import IntersectInfo

_MAX_BXDFS = 8
_NORMAL = np.array([0.0, 0.0, 1.0])


class BxDFType(IntFlag):
    """Classification flags of a scattering function."""

    NONE = 0
    REFLECTION = 1 << 0
    TRANSMISSION = 1 << 1
    DIFFUSE = 1 << 2
    GLOSSY = 1 << 3
    SPECULAR = 1 << 4
    ALL = DIFFUSE | GLOSSY | SPECULAR | REFLECTION | TRANSMISSION


def is_specular(bxdf_type: BxDFType) -> bool:
    """Whether the type describes a perfectly specular lobe."""
    return bool(bxdf_type & BxDFType.SPECULAR)


@dataclass
class BxDFSample:
    """Result of sampling an incident direction."""

    f: np.ndarray = field(default_factory=lambda: np.zeros(3))
    wi: np.ndarray = field(default_factory=lambda: np.zeros(3))
    pdf: float = 0.0
    sampled_type: BxDFType = BxDFType.NONE


class _Distribution(Protocol):
    """Microfacet distribution used by the glossy lobes."""

    def d(self, wh: np.ndarray) -> float: ...

    def g(self, wo: np.ndarray, wi: np.ndarray) -> float: ...

    def sample_wh(self, wo: np.ndarray, u: np.ndarray) -> np.ndarray: ...

    def pdf(self, wo: np.ndarray, wh: np.ndarray) -> float: ...


def _vec(v) -> np.ndarray:
    return np.asarray(v, dtype=np.float64).reshape(3)


def _cos_theta(w: np.ndarray) -> float:
    return float(w[2])


def _abs_cos_theta(w: np.ndarray) -> float:
    return abs(float(w[2]))


def _sin_theta(w: np.ndarray) -> float:
    return math.sqrt(max(0.0, 1.0 - float(w[2]) * float(w[2])))


def _cos_phi(w: np.ndarray) -> float:
    s = _sin_theta(w)
    return 1.0 if s == 0.0 else min(max(float(w[0]) / s, -1.0), 1.0)


def _sin_phi(w: np.ndarray) -> float:
    s = _sin_theta(w)
    return 0.0 if s == 0.0 else min(max(float(w[1]) / s, -1.0), 1.0)


def _same_hemisphere(w: np.ndarray, wp: np.ndarray) -> bool:
    return float(w[2]) * float(wp[2]) > 0.0


def _reflect(wo: np.ndarray, n: np.ndarray) -> np.ndarray:
    return -wo + 2.0 * float(np.dot(wo, n)) * n


def _faceforward(n: np.ndarray, v: np.ndarray) -> np.ndarray:
    return -n if float(np.dot(n, v)) < 0.0 else n


def _refract(wi: np.ndarray, n: np.ndarray, eta: float) -> Optional[np.ndarray]:
    cos_theta_i = float(np.dot(n, wi))
    sin2_theta_i = max(0.0, 1.0 - cos_theta_i * cos_theta_i)
    sin2_theta_t = eta * eta * sin2_theta_i
    if sin2_theta_t >= 1.0:
        return None
    cos_theta_t = math.sqrt(1.0 - sin2_theta_t)
    return eta * -wi + (eta * cos_theta_i - cos_theta_t) * n


def _normalize(v: np.ndarray) -> np.ndarray:
    return v / np.linalg.norm(v)


def _cosine_sample_hemisphere(rng: np.random.Generator) -> np.ndarray:
    ux, uy = rng.uniform(0.0, 1.0, 2) * 2.0 - 1.0
    if ux == 0.0 and uy == 0.0:
        dx = dy = 0.0
    else:
        if abs(ux) > abs(uy):
            r, theta = ux, math.pi / 4.0 * (uy / ux)
        else:
            r, theta = uy, math.pi / 2.0 - math.pi / 4.0 * (ux / uy)
        dx, dy = r * math.cos(theta), r * math.sin(theta)
    z = math.sqrt(max(0.0, 1.0 - dx * dx - dy * dy))
    return np.array([dx, dy, z])


class BxDF(ABC):
    """A single reflection or transmission lobe in the local shading frame."""

    def __init__(self, bxdf_type: BxDFType) -> None:
        self.type = BxDFType(bxdf_type)
        self.rng = np.random.default_rng()

    def matches_flags(self, flags: BxDFType) -> bool:
        return (self.type & flags) == self.type

    @abstractmethod
    def f(self, wo, wi) -> np.ndarray:
        """Value of the distribution for the pair of directions."""

    def sample_f(self, wo) -> BxDFSample:
        """Cosine-sample the hemisphere on the side of wo."""
        wo = _vec(wo)
        wi = _cosine_sample_hemisphere(self.rng)
        if wo[2] < 0.0:
            wi[2] *= -1.0
        return BxDFSample(self.f(wo, wi), wi, self.pdf(wo, wi), self.type)

    def pdf(self, wo, wi) -> float:
        wo, wi = _vec(wo), _vec(wi)
        return _abs_cos_theta(wi) / math.pi if _same_hemisphere(wo, wi) else 0.0


class LambertianReflection(BxDF):
    """Perfectly diffuse reflection."""

    def __init__(self, r: Sequence[float]) -> None:
        super().__init__(BxDFType.REFLECTION | BxDFType.DIFFUSE)
        self.r = _vec(r)

    def f(self, wo, wi) -> np.ndarray:
        return self.r / math.pi


class OrenNayar(BxDF):
    """Rough diffuse reflection; sigma is the slope deviation in degrees."""

    def __init__(self, r: Sequence[float], sigma: float) -> None:
        super().__init__(BxDFType.REFLECTION | BxDFType.DIFFUSE)
        self.r = _vec(r)
        sigma = math.radians(sigma)
        sigma2 = sigma * sigma
        self.a = 1.0 - sigma2 / (2.0 * (sigma2 + 0.33))
        self.b = 0.45 * sigma2 / (sigma2 + 0.09)

    def f(self, wo, wi) -> np.ndarray:
        wo, wi = _vec(wo), _vec(wi)
        sin_theta_i = _sin_theta(wi)
        sin_theta_o = _sin_theta(wo)
        max_cos = 0.0
        if sin_theta_i > 1e-4 and sin_theta_o > 1e-4:
            d_cos = _cos_phi(wi) * _cos_phi(wo) + _sin_phi(wi) * _sin_phi(wo)
            max_cos = max(0.0, d_cos)
        with np.errstate(divide="ignore", invalid="ignore"):
            if _abs_cos_theta(wi) > _abs_cos_theta(wo):
                sin_alpha = sin_theta_o
                tan_beta = np.float64(sin_theta_i) / _abs_cos_theta(wi)
            else:
                sin_alpha = sin_theta_i
                tan_beta = np.float64(sin_theta_o) / _abs_cos_theta(wo)
            return self.r * (self.a + self.b * max_cos * sin_alpha * float(tan_beta)) / math.pi


class SpecularReflection(BxDF):
    """Mirror reflection scaled by a Fresnel term."""

    def __init__(self, r: Sequence[float], fresnel: Fresnel) -> None:
        super().__init__(BxDFType.REFLECTION | BxDFType.SPECULAR)
        self.r = _vec(r)
        self.fresnel = fresnel

    def f(self, wo, wi) -> np.ndarray:
        return np.zeros(3)

    def sample_f(self, wo) -> BxDFSample:
        wo = _vec(wo)
        wi = np.array([-wo[0], -wo[1], wo[2]])
        with np.errstate(divide="ignore", invalid="ignore"):
            value = self.fresnel.evaluate(_cos_theta(wi)) * self.r / _abs_cos_theta(wi)
        return BxDFSample(value, wi, 1.0, self.type)

    def pdf(self, wo, wi) -> float:
        return 0.0


class MicrofacetReflection(BxDF):
    """Glossy reflection from a microfacet distribution."""

    def __init__(self, r: Sequence[float], distribution: _Distribution, fresnel: Fresnel) -> None:
        super().__init__(BxDFType.REFLECTION | BxDFType.GLOSSY)
        self.r = _vec(r)
        self.distribution = distribution
        self.fresnel = fresnel

    def f(self, wo, wi) -> np.ndarray:
        wo, wi = _vec(wo), _vec(wi)
        cos_o, cos_i = _abs_cos_theta(wo), _abs_cos_theta(wi)
        wh = wi + wo
        if cos_i == 0.0 or cos_o == 0.0 or not wh.any():
            return np.zeros(3)
        wh = _normalize(wh)
        fr = self.fresnel.evaluate(float(np.dot(wi, _faceforward(wh, _NORMAL))))
        d = self.distribution.d(wh)
        g = self.distribution.g(wo, wi)
        return self.r * d * g * fr / (4.0 * cos_i * cos_o)

    def sample_f(self, wo) -> BxDFSample:
        wo = _vec(wo)
        u = self.rng.uniform(0.0, 1.0, 2)
        if wo[2] == 0.0:
            return BxDFSample()
        wh = _vec(self.distribution.sample_wh(wo, u))
        if float(np.dot(wo, wh)) < 0.0:
            return BxDFSample()
        wi = _reflect(wo, wh)
        if not _same_hemisphere(wo, wi):
            return BxDFSample(np.zeros(3), wi, 0.0, self.type)
        pdf = self.distribution.pdf(wo, wh) / (4.0 * float(np.dot(wo, wh)))
        return BxDFSample(self.f(wo, wi), wi, pdf, self.type)

    def pdf(self, wo, wi) -> float:
        wo, wi = _vec(wo), _vec(wi)
        if not _same_hemisphere(wo, wi):
            return 0.0
        wh = _normalize(wo + wi)
        return self.distribution.pdf(wo, wh) / (4.0 * float(np.dot(wo, wh)))


class SpecularTransmission(BxDF):
    """Perfect refraction through a dielectric boundary."""

    def __init__(self, t: Sequence[float], eta_a: float, eta_b: float) -> None:
        super().__init__(BxDFType.TRANSMISSION | BxDFType.SPECULAR)
        self.t = _vec(t)
        self.eta_a = float(eta_a)
        self.eta_b = float(eta_b)
        self.fresnel = FresnelDielectric(eta_a, eta_b)

    def f(self, wo, wi) -> np.ndarray:
        return np.zeros(3)

    def sample_f(self, wo) -> BxDFSample:
        wo = _vec(wo)
        entering = _cos_theta(wo) > 0.0
        eta_i, eta_t = (self.eta_a, self.eta_b) if entering else (self.eta_b, self.eta_a)
        wi = _refract(wo, _faceforward(_NORMAL, wo), eta_i / eta_t)
        if wi is None:
            return BxDFSample()
        ft = self.t * (1.0 - self.fresnel.evaluate(_cos_theta(wi)))
        with np.errstate(divide="ignore", invalid="ignore"):
            value = ft / _abs_cos_theta(wi)
        return BxDFSample(value, wi, 1.0, self.type)

    def pdf(self, wo, wi) -> float:
        return 0.0


class MicrofacetTransmission(BxDF):
    """Glossy refraction through a rough dielectric boundary."""

    def __init__(self, t: Sequence[float], distribution: _Distribution, eta_a: float, eta_b: float) -> None:
        super().__init__(BxDFType.TRANSMISSION | BxDFType.GLOSSY)
        self.t = _vec(t)
        self.distribution = distribution
        self.eta_a = float(eta_a)
        self.eta_b = float(eta_b)
        self.fresnel = FresnelDielectric(eta_a, eta_b)

    def _eta(self, wo: np.ndarray) -> float:
        return self.eta_b / self.eta_a if _cos_theta(wo) > 0.0 else self.eta_a / self.eta_b

    def f(self, wo, wi) -> np.ndarray:
        wo, wi = _vec(wo), _vec(wi)
        if _same_hemisphere(wo, wi):
            return np.zeros(3)
        cos_o, cos_i = _cos_theta(wo), _cos_theta(wi)
        if cos_i == 0.0 or cos_o == 0.0:
            return np.zeros(3)
        eta = self._eta(wo)
        wh = _normalize(wo + wi * eta)
        if wh[2] < 0.0:
            wh = -wh
        wo_wh, wi_wh = float(np.dot(wo, wh)), float(np.dot(wi, wh))
        if wo_wh * wi_wh > 0.0:
            return np.zeros(3)
        fr = self.fresnel.evaluate(wo_wh)
        sqrt_denom = wo_wh + eta * wi_wh
        factor = 1.0 / eta
        d = self.distribution.d(wh)
        g = self.distribution.g(wo, wi)
        scale = abs(
            d * g * eta * eta * abs(wi_wh) * abs(wo_wh) * factor * factor
            / (cos_i * cos_o * sqrt_denom * sqrt_denom)
        )
        return (1.0 - fr) * self.t * scale

    def sample_f(self, wo) -> BxDFSample:
        wo = _vec(wo)
        u = self.rng.uniform(0.0, 1.0, 2)
        if wo[2] == 0.0:
            return BxDFSample()
        wh = _vec(self.distribution.sample_wh(wo, u))
        if float(np.dot(wo, wh)) < 0.0:
            return BxDFSample()
        eta = self.eta_a / self.eta_b if _cos_theta(wo) > 0.0 else self.eta_b / self.eta_a
        wi = _refract(wo, wh, eta)
        if wi is None:
            return BxDFSample()
        return BxDFSample(self.f(wo, wi), wi, self.pdf(wo, wi), self.type)

    def pdf(self, wo, wi) -> float:
        wo, wi = _vec(wo), _vec(wi)
        if _same_hemisphere(wo, wi):
            return 0.0
        eta = self._eta(wo)
        wh = _normalize(wo + wi * eta)
        wo_wh, wi_wh = float(np.dot(wo, wh)), float(np.dot(wi, wh))
        if wo_wh * wi_wh > 0.0:
            return 0.0
        sqrt_denom = wo_wh + eta * wi_wh
        dwh_dwi = abs((eta * eta * wi_wh) / (sqrt_denom * sqrt_denom))
        return self.distribution.pdf(wo, wh) * dwh_dwi


class FresnelSpecular(BxDF):
    """Specular reflection and transmission chosen by the Fresnel term."""

    def __init__(self, r: Sequence[float], t: Sequence[float], eta_a: float, eta_b: float) -> None:
        super().__init__(BxDFType.REFLECTION | BxDFType.TRANSMISSION | BxDFType.SPECULAR)
        self.r = _vec(r)
        self.t = _vec(t)
        self.eta_a = float(eta_a)
        self.eta_b = float(eta_b)

    def f(self, wo, wi) -> np.ndarray:
        return np.zeros(3)

    def sample_f(self, wo) -> BxDFSample:
        wo = _vec(wo)
        fr = fr_dielectric(_cos_theta(wo), self.eta_a, self.eta_b)
        u = self.rng.uniform(0.0, 1.0, 2)
        if u[0] < fr:
            wi = np.array([-wo[0], -wo[1], wo[2]])
            with np.errstate(divide="ignore", invalid="ignore"):
                value = fr * self.r / _abs_cos_theta(wi)
            return BxDFSample(value, wi, fr, BxDFType.SPECULAR | BxDFType.REFLECTION)
        entering = _cos_theta(wo) > 0.0
        eta_i, eta_t = (self.eta_a, self.eta_b) if entering else (self.eta_b, self.eta_a)
        wi = _refract(wo, _faceforward(_NORMAL, wo), eta_i / eta_t)
        if wi is None:
            return BxDFSample()
        with np.errstate(divide="ignore", invalid="ignore"):
            value = self.t * (1.0 - fr) / _abs_cos_theta(wi)
        return BxDFSample(value, wi, 1.0 - fr, BxDFType.SPECULAR | BxDFType.TRANSMISSION)

    def pdf(self, wo, wi) -> float:
        return 0.0


class LambertianTransmission(BxDF):
    """Perfectly diffuse transmission."""

    def __init__(self, t: Sequence[float]) -> None:
        super().__init__(BxDFType.TRANSMISSION | BxDFType.DIFFUSE)
        self.t = _vec(t)

    def f(self, wo, wi) -> np.ndarray:
        return self.t / math.pi

    def sample_f(self, wo) -> BxDFSample:
        wo = _vec(wo)
        wi = _cosine_sample_hemisphere(self.rng)
        if wo[2] > 0.0:
            wi[2] *= -1.0
        return BxDFSample(self.f(wo, wi), wi, self.pdf(wo, wi), self.type)

    def pdf(self, wo, wi) -> float:
        wo, wi = _vec(wo), _vec(wi)
        return 0.0 if _same_hemisphere(wo, wi) else _abs_cos_theta(wi) / math.pi


class BSDF:
    """A weighted set of up to eight BxDFs at a surface point."""

    def __init__(self, intersect_info: IntersectInfo, eta: float = 1.0) -> None:
        self._ltw = intersect_info.surface_frame()
        self.eta = float(eta)
        self.bxdfs: list[BxDF] = []
        self._weights_cdf: list[float] = []
        self.rng = np.random.default_rng()

    def add(self, bxdf: BxDF, weight: float = 1.0) -> None:
        if len(self.bxdfs) >= _MAX_BXDFS:
            raise ValueError(f"a BSDF holds at most {_MAX_BXDFS} components")
        previous = self._weights_cdf[-1] if self._weights_cdf else 0.0
        self._weights_cdf.append(previous + float(weight))
        self.bxdfs.append(bxdf)

    def is_transmissive(self) -> bool:
        return any(b.type & BxDFType.TRANSMISSION for b in self.bxdfs)

    def local_to_world(self, w) -> np.ndarray:
        return self._ltw @ _vec(w)

    def world_to_local(self, w) -> np.ndarray:
        return self._ltw.T @ _vec(w)

    def num_components(self, flags: BxDFType = BxDFType.ALL) -> int:
        return sum(1 for b in self.bxdfs if b.matches_flags(flags))

    def _sum_f(self, wo: np.ndarray, wi: np.ndarray, flags: BxDFType) -> np.ndarray:
        reflect = float(wo[2]) * float(wi[2]) > 0.0
        wanted = BxDFType.REFLECTION if reflect else BxDFType.TRANSMISSION
        total = np.zeros(3)
        for b in self.bxdfs:
            if b.matches_flags(flags) and b.type & wanted:
                total = total + b.f(wo, wi)
        return total

    def f(self, wo_w, wi_w, flags: BxDFType = BxDFType.ALL) -> np.ndarray:
        wo = self.world_to_local(wo_w)
        wi = self.world_to_local(wi_w)
        if wo[2] == 0.0:
            return np.zeros(3)
        return self._sum_f(wo, wi, flags)

    def sample_f(self, wo_w, flags: BxDFType = BxDFType.ALL) -> BxDFSample:
        """Pick a matching component, sample it, and return a world-space sample."""
        matching = [b for b in self.bxdfs if b.matches_flags(flags)]
        if not matching:
            return BxDFSample()
        linear = self.rng.uniform(0.0, self._weights_cdf[-1])
        comp = next((i for i, c in enumerate(self._weights_cdf) if linear < c), 0)
        bxdf = matching[min(comp, len(matching) - 1)]

        wo = self.world_to_local(wo_w)
        if wo[2] == 0.0:
            return BxDFSample()
        sample = bxdf.sample_f(wo)
        if sample.pdf == 0.0:
            return BxDFSample()
        wi = sample.wi
        pdf = sample.pdf
        value = sample.f

        specular = bool(bxdf.type & BxDFType.SPECULAR)
        if not specular and len(matching) > 1:
            pdf += sum(b.pdf(wo, wi) for b in matching if b is not bxdf)
        if len(matching) > 1:
            pdf /= len(matching)
        if not specular:
            value = self._sum_f(wo, wi, flags)
        return BxDFSample(value, self.local_to_world(wi), pdf, sample.sampled_type)

    def pdf(self, wo_w, wi_w, flags: BxDFType = BxDFType.ALL) -> float:
        if not self.bxdfs:
            return 0.0
        wo = self.world_to_local(wo_w)
        wi = self.world_to_local(wi_w)
        if wo[2] == 0.0:
            return 0.0
        pdfs = [b.pdf(wo, wi) for b in self.bxdfs if b.matches_flags(flags)]
        return sum(pdfs) / len(pdfs) if pdfs else 0.0