"""
Analysis package for splitstage.

This package contains the static heuristics that score, relate and
classify changed files before boundaries are detected: language-aware
helpers, path buckets, relationships, importance and complexity.
"""
