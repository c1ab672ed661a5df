"""Pure domain logic: settings, templates, layout and review state."""
