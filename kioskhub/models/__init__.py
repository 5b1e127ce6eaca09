"""Data models for commands, devices, device status, tenants, certificates and field trips."""