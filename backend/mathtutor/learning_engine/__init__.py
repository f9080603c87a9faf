"""Learning engine: mastery heuristics and their tuning constants."""
