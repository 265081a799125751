"""
vs-exporter: product pod metrics and Istio VirtualService routing health
for Prometheus.
"""

__version__ = "0.1.0"
