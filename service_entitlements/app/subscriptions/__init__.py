"""
Subscription lifecycle: trial onboarding, plan changes and billing status events.
"""
