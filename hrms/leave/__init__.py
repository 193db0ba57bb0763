"""Leave module — leave requests and their approval workflow."""
