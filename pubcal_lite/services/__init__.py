"""I/O collaborators: ICS download and the cached calendar service."""
