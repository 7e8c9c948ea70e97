"""Matchday: season schedule generation, lifecycle tracking, and standings for a sports league."""
