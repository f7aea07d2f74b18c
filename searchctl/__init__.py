"""Manage search cluster profiles and drive the k-NN and anomaly detection plugins."""

__version__ = "1.1.0"