"""phpwalk: a stack-driven evaluator for a PHP subset."""
