# /llmrouter/utils/metrics.py

from prometheus_client import Counter, Histogram

# This file defines all Prometheus metrics used for application monitoring.
# Centralizing them here makes them easy to find and manage.

# Provider Metrics
llm_requests_counter = Counter('llm_requests_total', 'Total LLM provider calls', ['provider', 'mode', 'status'])
proxy_requests_counter = Counter('proxy_requests_total', 'Requests relayed by the chat proxy', ['provider', 'status'])

# Flow Metrics
flow_runs_counter = Counter('flow_runs_total', 'Flow executions by outcome', ['status'])
flow_steps_counter = Counter('flow_steps_total', 'Flow steps by outcome', ['status'])

# Performance Metrics
response_time_histogram = Histogram('response_time_seconds', 'Response time in seconds', ['endpoint'])
