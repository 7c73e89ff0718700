"""Fact mastery and daily goal progression service."""
