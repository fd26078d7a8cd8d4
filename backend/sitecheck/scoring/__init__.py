from sitecheck.scoring.aggregator import ClusterScore, ScoreReport, aggregate
from sitecheck.scoring.policy import ScoringPolicy, load_policy

__all__ = ["ClusterScore", "ScoreReport", "aggregate", "ScoringPolicy", "load_policy"]
