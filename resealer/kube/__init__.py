"""Cluster access for resealer.

Submodules
----------
gateway   -- ClusterGateway ABC and the rate-limited decorator every component talks to.
client    -- KubernetesGateway over kubernetes-asyncio, plus client bootstrap.
ratelimit -- token bucket shared by every cluster API call of a run.
"""

from resealer.kube.gateway import ClusterGateway, RateLimitedGateway

__all__ = ["ClusterGateway", "RateLimitedGateway"]
