"""
IntentLedger core — vocabulary, errors, hashes, clock, access control, facts.
"""
