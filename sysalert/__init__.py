"""sysalert - system health monitoring and alerting agent"""

__version__ = '1.0.0'
