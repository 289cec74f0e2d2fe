"""HTTP API for the payroll tracker."""
