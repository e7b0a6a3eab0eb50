"""GlobalAuth modules. Each package exposes a small black-box interface."""
