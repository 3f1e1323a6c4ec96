"""
Parkinson's Voice Analysis Pipelines

CLI scripts for:
- report: Full analysis run (load, reduce, select, diagnose, evaluate) with
  Markdown report and figures
"""
