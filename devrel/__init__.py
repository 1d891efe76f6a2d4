"""Release-train and pull request tooling for monorepos."""

__version__ = "0.4.0"
