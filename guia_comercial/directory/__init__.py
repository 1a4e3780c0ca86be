"""
Business directory.

Responsibilities:
- Filter, sort and partition businesses for the home listing.
- Business, opinion and reply lifecycle.
- Ad tier table and expiration notices.
"""
