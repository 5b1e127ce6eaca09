"""SQLite repositories for tablets, groups, reports, tenants, devices, certificates, commands and field trips."""