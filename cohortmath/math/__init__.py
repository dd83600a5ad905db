"""
Analysis engine: distances, k-means, representatives, similarity graph and k-cores.
"""
