"""Scales a Kubernetes Deployment of Buildkite agents to match queued builds."""

__version__ = "0.1.0"
