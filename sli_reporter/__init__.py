"""ALB availability and latency SLIs from CloudWatch"""

__version__ = "0.1.0"
