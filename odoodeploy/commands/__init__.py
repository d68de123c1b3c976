"""odoodeploy CLI commands"""
