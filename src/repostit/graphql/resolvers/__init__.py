"""Resolver package for the GraphQL schema.

Types, queries and mutations import these functions lazily so that the
resolvers can depend on the types without import cycles.
"""
