"""Full-screen terminal front end."""
