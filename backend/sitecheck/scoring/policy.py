# sitecheck/scoring/policy.py
"""
Scoring policy: how much each probe is worth and which cluster it counts
towards.

The default policy is built in. A deployment can replace it with a JSON
file named by SITECHECK_SCORING_POLICY:

    {
      "weights":  {"ssl": 10, "headers": 35, ...},
      "clusters": {"network": ["ssl", "dns", ...], ...},
      "defaultWeight": 10
    }

Missing keys fall back to the defaults. The policy is loaded once per
process and shared read-only by every scan.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, Optional, Tuple

from sitecheck.errors import PolicyError

logger = logging.getLogger(__name__)

DEFAULT_WEIGHT = 10.0

DEFAULT_WEIGHTS: Dict[str, float] = {
    "ssl": 10,
    "spf": 5,
    "dmarc": 5,
    "api": 20,
    "dns": 10,
    "xss": 20,
    "webvuln": 20,
    "wordpress": 10,
    "ports": 20,
    "subdomains": 10,
    "headers": 35,  # 7 headers x 5
    "cookie": 10,
    "csp": 10,
    "oauth": 15,
}

DEFAULT_CLUSTERS: Dict[str, Tuple[str, ...]] = {
    "network": ("ssl", "dns", "ports", "subdomains"),
    "web": ("xss", "webvuln", "wordpress", "headers", "csp"),
    "auth": ("api", "oauth"),
    "mail": ("spf", "dmarc"),
    "privacy": ("cookie",),
}


@dataclass(frozen=True)
class ScoringPolicy:
    weights: Dict[str, float] = field(default_factory=lambda: dict(DEFAULT_WEIGHTS))
    clusters: Dict[str, Tuple[str, ...]] = field(default_factory=lambda: dict(DEFAULT_CLUSTERS))
    default_weight: float = DEFAULT_WEIGHT

    def weight_for(self, probe: str) -> float:
        return self.weights.get(probe, self.default_weight)

    def validate(self, known_probes: Iterable[str]) -> None:
        """Raise PolicyError if the policy cannot be applied to this registry."""
        known = set(known_probes)

        if self.default_weight <= 0:
            raise PolicyError(f"defaultWeight must be positive, got {self.default_weight}")
        for probe, weight in self.weights.items():
            if not isinstance(weight, (int, float)) or isinstance(weight, bool) or weight <= 0:
                raise PolicyError(f"Weight for '{probe}' must be a positive number, got {weight!r}")

        # A name may sit in several clusters; it then counts in each.
        for cluster, probes in self.clusters.items():
            for probe in probes:
                if probe not in known:
                    raise PolicyError(f"Cluster '{cluster}' names unknown probe '{probe}'")


def policy_from_dict(data: dict) -> ScoringPolicy:
    if not isinstance(data, dict):
        raise PolicyError("Scoring policy must be a JSON object")

    weights = dict(DEFAULT_WEIGHTS)
    weights.update(data.get("weights") or {})

    raw_clusters = data.get("clusters")
    if raw_clusters is None:
        clusters = dict(DEFAULT_CLUSTERS)
    elif isinstance(raw_clusters, dict):
        clusters = {name: tuple(probes) for name, probes in raw_clusters.items()}
    else:
        raise PolicyError("'clusters' must map cluster names to lists of probes")

    return ScoringPolicy(
        weights=weights,
        clusters=clusters,
        default_weight=data.get("defaultWeight", DEFAULT_WEIGHT),
    )


def load_policy(path: Optional[str] = None, known_probes: Optional[Iterable[str]] = None) -> ScoringPolicy:
    """
    Build the scoring policy, from `path` if given, else the defaults.

    `known_probes` defaults to the probe registry; every probe a cluster
    names must be in it.
    """
    if known_probes is None:
        from sitecheck.scanner.probes import ALL_PROBES
        known_probes = ALL_PROBES.keys()

    if path:
        try:
            with open(path, "r") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise PolicyError(f"Cannot read scoring policy {path}: {e}") from e
        policy = policy_from_dict(data)
        logger.info(f"Loaded scoring policy from {path}")
    else:
        policy = ScoringPolicy()

    policy.validate(known_probes)
    return policy
