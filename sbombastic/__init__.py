"""Resource model, scheme, version mapping, JSON logging and reconcilers for registry SBOM generation and scanning."""

__version__ = "0.1.0"