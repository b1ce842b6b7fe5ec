"""Envoy configuration builders and gateway settings for an ingress gateway."""

__version__ = "0.1.0"