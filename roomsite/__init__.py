"""
Roomsite backend: OTC booking provider proxy for the escape room website.
"""
