"""Protobuf messages of the agent's discovery handler protocol (package v0).

Message classes are created at import time from a `FileDescriptorProto`
held in a private descriptor pool, so no generated `_pb2` modules are
needed.
"""

from google.protobuf import descriptor_pb2, descriptor_pool, message_factory

_PACKAGE = "v0"
_FIELD = descriptor_pb2.FieldDescriptorProto


def _add_field(
    message: descriptor_pb2.DescriptorProto,
    name: str,
    number: int,
    field_type: int,
    label: int = _FIELD.LABEL_OPTIONAL,
    type_name: str | None = None,
) -> None:
    field = message.field.add(
        name=name, number=number, type=field_type, label=label
    )
    if type_name is not None:
        field.type_name = type_name


def _add_map_field(
    message: descriptor_pb2.DescriptorProto,
    name: str,
    number: int,
    value_type: int,
    value_type_name: str | None = None,
) -> None:
    entry_name = "".join(part.capitalize() for part in name.split("_"))
    entry_name = f"{entry_name}Entry"

    entry = message.nested_type.add(name=entry_name)
    entry.options.map_entry = True
    _add_field(entry, "key", 1, _FIELD.TYPE_STRING)
    _add_field(entry, "value", 2, value_type, type_name=value_type_name)

    _add_field(
        message,
        name,
        number,
        _FIELD.TYPE_MESSAGE,
        _FIELD.LABEL_REPEATED,
        f".{_PACKAGE}.{message.name}.{entry_name}",
    )


def _build_file() -> descriptor_pb2.FileDescriptorProto:
    file_proto = descriptor_pb2.FileDescriptorProto(
        name="mdns_discovery/discovery.proto",
        package=_PACKAGE,
        syntax="proto3",
    )

    register = file_proto.message_type.add(
        name="RegisterDiscoveryHandlerRequest"
    )
    endpoint_type = register.enum_type.add(name="EndpointType")
    endpoint_type.value.add(name="UDS", number=0)
    endpoint_type.value.add(name="NETWORK", number=1)
    _add_field(register, "name", 1, _FIELD.TYPE_STRING)
    _add_field(register, "endpoint", 2, _FIELD.TYPE_STRING)
    _add_field(
        register,
        "endpoint_type",
        3,
        _FIELD.TYPE_ENUM,
        type_name=f".{_PACKAGE}.RegisterDiscoveryHandlerRequest.EndpointType",
    )
    _add_field(register, "shared", 4, _FIELD.TYPE_BOOL)

    file_proto.message_type.add(name="Empty")

    byte_data = file_proto.message_type.add(name="ByteData")
    _add_field(byte_data, "vec", 1, _FIELD.TYPE_BYTES)

    discover_request = file_proto.message_type.add(name="DiscoverRequest")
    _add_field(discover_request, "discovery_details", 1, _FIELD.TYPE_STRING)
    _add_map_field(
        discover_request,
        "discovery_properties",
        2,
        _FIELD.TYPE_MESSAGE,
        f".{_PACKAGE}.ByteData",
    )

    mount = file_proto.message_type.add(name="Mount")
    _add_field(mount, "container_path", 1, _FIELD.TYPE_STRING)
    _add_field(mount, "host_path", 2, _FIELD.TYPE_STRING)
    _add_field(mount, "read_only", 3, _FIELD.TYPE_BOOL)

    device_spec = file_proto.message_type.add(name="DeviceSpec")
    _add_field(device_spec, "container_path", 1, _FIELD.TYPE_STRING)
    _add_field(device_spec, "host_path", 2, _FIELD.TYPE_STRING)
    _add_field(device_spec, "permissions", 3, _FIELD.TYPE_STRING)

    device = file_proto.message_type.add(name="Device")
    _add_field(device, "id", 1, _FIELD.TYPE_STRING)
    _add_map_field(device, "properties", 2, _FIELD.TYPE_STRING)
    _add_field(
        device,
        "mounts",
        3,
        _FIELD.TYPE_MESSAGE,
        _FIELD.LABEL_REPEATED,
        f".{_PACKAGE}.Mount",
    )
    _add_field(
        device,
        "device_specs",
        4,
        _FIELD.TYPE_MESSAGE,
        _FIELD.LABEL_REPEATED,
        f".{_PACKAGE}.DeviceSpec",
    )

    discover_response = file_proto.message_type.add(name="DiscoverResponse")
    _add_field(
        discover_response,
        "devices",
        1,
        _FIELD.TYPE_MESSAGE,
        _FIELD.LABEL_REPEATED,
        f".{_PACKAGE}.Device",
    )

    return file_proto


_POOL = descriptor_pool.DescriptorPool()
_POOL.AddSerializedFile(_build_file().SerializeToString())


def _message_class(name: str) -> type:
    return message_factory.GetMessageClass(
        _POOL.FindMessageTypeByName(f"{_PACKAGE}.{name}")
    )


RegisterDiscoveryHandlerRequest = _message_class(
    "RegisterDiscoveryHandlerRequest"
)
Empty = _message_class("Empty")
ByteData = _message_class("ByteData")
DiscoverRequest = _message_class("DiscoverRequest")
Mount = _message_class("Mount")
DeviceSpec = _message_class("DeviceSpec")
Device = _message_class("Device")
DiscoverResponse = _message_class("DiscoverResponse")

# Fully qualified gRPC method paths.
DISCOVER_METHOD = f"/{_PACKAGE}.DiscoveryHandler/Discover"
REGISTER_DISCOVERY_HANDLER_METHOD = (
    f"/{_PACKAGE}.Registration/RegisterDiscoveryHandler"
)
