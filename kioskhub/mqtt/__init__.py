"""Broker settings, topic layout, message handlers and client."""