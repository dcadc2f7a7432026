"""Logging and Prometheus metrics for kubetopo."""
