import pytest

from angelscript_binding_generator.models import ClassRecord, EnumRecord, SourceModel, UsingRecord
from angelscript_binding_generator.type_mapping import TypeMapper


@pytest.fixture
def model():
    return SourceModel(
        classes=[
            ClassRecord(name="Node", id="class_urho3d_1_1_node", header_file="Scene/Node.h", is_ref_counted=True),
            ClassRecord(name="Foo", header_file="Foo.h", is_ref_counted=True),
            ClassRecord(name="String", header_file="Container/Str.h"),
            ClassRecord(name="Vector3", header_file="Math/Vector3.h"),
            ClassRecord(name="Context", header_file="Core/Context.h", is_ref_counted=True),
            ClassRecord(name="WorkItem", header_file="Core/WorkQueue.h", is_ref_counted=True),
            ClassRecord(name="AllocatorBlock", header_file="Container/Allocator.h", is_internal=True),
            ClassRecord(name="Hidden", header_file="Hidden.h", comment="/// NO_BIND", is_ref_counted=True),
            ClassRecord(name="Bone", header_file="Graphics/Skeleton.h", comment="/// FAKE_REF"),
            ClassRecord(name="NavigationMesh", header_file="Navigation/NavigationMesh.h", is_ref_counted=True),
        ],
        enums=[EnumRecord(name="BlendMode")],
        usings=[UsingRecord(name="VariantMap", target="HashMap<StringHash, Variant>"),
                UsingRecord(name="ClearTargetFlags", target="FlagSet<ClearTarget>")],
        header_defines={"Navigation/NavigationMesh.h": "URHO3D_NAVIGATION"},
    )


@pytest.fixture
def mapper(model):
    return TypeMapper(model)
