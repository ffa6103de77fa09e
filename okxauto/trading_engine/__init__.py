"""
Trading engine building blocks: ticks and signals, range-entry rules,
balance checks, order execution and the position/margin monitors.
"""
