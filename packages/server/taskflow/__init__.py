"""TaskFlow server: organizations, projects, tasks, roles and invitations."""
