"""Text-generation collaborators used by the recommendation engine."""
