"""Nomad job scaling: policies, policy storage, a meta watcher and a command line client."""

__version__ = "0.1.0"