"""
Scoring engines and their shared numerics and persistence.
"""
