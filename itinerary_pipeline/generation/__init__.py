"""
Guaranteed JSON generation: model access, output repair, caching and metrics.
"""
