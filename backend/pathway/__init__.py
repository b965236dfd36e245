"""
Pathway: adaptive onboarding path orchestration engine.
"""
