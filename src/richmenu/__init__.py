"""LINE rich menu publishing: payload building, validation and remote provisioning."""
