"""
Proxy testing: domain probes and per-configuration runners.
"""

from .probe import DomainProbe, proxy_url
from .runner import ConfigRunner, ProxyProcess, ProxyStartError

__all__ = ["DomainProbe", "proxy_url", "ConfigRunner", "ProxyProcess", "ProxyStartError"]
