"""Image acquisition and carousel generation services."""
