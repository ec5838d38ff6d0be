"""GraphQL API: schema, resolvers and batched loaders."""
