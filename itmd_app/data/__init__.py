"""
Itinerary domain data: models, price normalization, frontmatter and parsers.
"""
