"""Report frames, aggregates and per-report builders."""
