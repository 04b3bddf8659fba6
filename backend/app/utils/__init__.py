"""
Pure helpers shared by services (slugs, promotional codes)
"""
