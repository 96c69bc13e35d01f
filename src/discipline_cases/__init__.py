"""Student discipline case lifecycle and action timeline engine."""
