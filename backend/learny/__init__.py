"""Learny learner-state backend."""
