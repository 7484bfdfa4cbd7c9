"""
firmware_reconciler

This package reconciles desired BIOS and firmware settings of physical hosts
against the settings their management controllers report.

We keep modules small and well separated:
core contains shared data structures, errors and serialization
schema contains content addressed schema storage
detection contains change detection between readings
validation contains the typed settings validator
status contains condition bookkeeping
store contains object store interfaces and the in memory store
hardware contains firmware reader interfaces and readers
inventory contains host registration sources
reconciler contains the per host engine and the runtime loop
audit contains the JSON line audit trail
"""
