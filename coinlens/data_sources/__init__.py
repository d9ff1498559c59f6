"""History and snapshot providers feeding the analysis core."""
