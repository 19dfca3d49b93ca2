"""Cache services and the widget registry."""
