"""
Server-rendered frontend built on the GraphQL API
"""
