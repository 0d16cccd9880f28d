"""
Detailbook - booking and appointment engine for detailing businesses
"""
