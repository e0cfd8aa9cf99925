"""HTTP resources, one blueprint factory per module."""
