"""
Scoring core: turns an opportunity and a user's history into a ``Score``.

Modules
-------
confidence : confidence_level(): the single "trust personal data?" rule.
weights    : ModeWeights + MODE_WEIGHTS table + weighted_overall().
factors    : The eight factor functions and their estimate_* helpers.
engine     : ScoringEngine.score() + risk levels, priority, reasoning.
"""
