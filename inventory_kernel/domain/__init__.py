"""Pure domain value objects: clock, workflow, collaborator contracts."""
