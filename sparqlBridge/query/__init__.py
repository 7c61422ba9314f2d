"""SPARQL query description, term wrapping and compilation."""
