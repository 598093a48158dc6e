"""Resolution pipeline: executor, transforms, manager, export."""
