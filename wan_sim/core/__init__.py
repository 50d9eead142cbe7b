"""Core components for WAN failover simulation.

This module contains the fundamental classes for the simulation, including the
EventScheduler, Topology, RoutingTable, LinkStateController, ForwardingEngine
and the NetworkSimulator facade that ties them together.
"""
