"""Infrastructure: database engine and SQLModel repositories."""
