"""
Content-based recommendation engine.

Responsibilities:
- Collect the businesses a public user has viewed, favorited or reviewed.
- Score every other business on category/city affinity plus an ad-tier boost.
- Return a short, stable-ordered list ready for API serialisation.
"""
