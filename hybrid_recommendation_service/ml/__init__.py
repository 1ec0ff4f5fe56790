"""Recommendation math: matrix building, features, similarity and scoring."""
