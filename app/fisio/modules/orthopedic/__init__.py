"""
Orthopedic assessment: per-region test catalogue and the rule table that
suggests a functional diagnosis and a clinical probability.
"""
