"""Role-based access control for the HTTP surface."""
