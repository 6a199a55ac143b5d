from device_agent.device.base import DeviceController, EditableTarget, GlobalAction, Point

__all__ = ['DeviceController', 'EditableTarget', 'GlobalAction', 'Point']
