"""
Recommendation layer: ranks scored opportunities for display.

Modules
-------
ranker : ScoredOpportunity + score_opportunities() + rank_opportunities()
         + build_recommendations() + compare_modes() + experience_summary()
         + build_metadata().
"""
