"""SCM Workflow API — claim approval and supplier-rating acceptance workflows."""
