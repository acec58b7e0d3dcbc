"""Crowd prediction, risk scoring and recommendations."""
