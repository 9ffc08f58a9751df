"""
Timeout Budget Sequencing Simulator

Core modules:
- budget: deadline arithmetic (remaining time, derived budgets, priority escalation)
- steps: fixed-timeout and weighted step variants
- sequencer: runs steps in order and races completion against the root budget
- reporting: text rendering of a run (no behavior changes)
"""
