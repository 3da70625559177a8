"""
Parking Pricing Package

Price-rule evaluation for a peer-to-peer parking marketplace.
Resolves booking prices using Rule Store → Rule Matcher → Price Resolver.
"""

__version__ = "1.0.0"
