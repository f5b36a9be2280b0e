"""Terrain core: tile decoding and caching, slope/aspect, sun position, shadow casting."""
