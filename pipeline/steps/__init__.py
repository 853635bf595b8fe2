"""Pipeline steps package.

This package contains the individual steps of the name validation pipeline:
- greeting_extractor: Finds greeting phrases and the names they address
- recipient_parser: Derives candidate names from recipient addresses
- name_matcher: Matches greeting names against recipients
"""
