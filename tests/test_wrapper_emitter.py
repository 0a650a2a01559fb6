import pytest

from angelscript_binding_generator.emitters.wrapper_emitter import (
    WrapperEmitter,
    generate_wrapper_name,
    join_param_types,
)
from angelscript_binding_generator.models import (
    FunctionInfo,
    MethodInfo,
    MethodKind,
    NativeType,
    ParameterInfo,
)
from angelscript_binding_generator.type_mapping import ConvertedVariable, VariableUsage


def T(spelling):
    return NativeType.from_spelling(spelling)


def P(name, spelling, default=""):
    return ParameterInfo(name=name, type=T(spelling), default_value=default)


def convert(mapper, fn):
    params = [mapper.map_variable(p.type, p.name, VariableUsage.PARAMETER, p.default_value) for p in fn.parameters]
    ret = mapper.map_variable(fn.return_type, "", VariableUsage.RETURN)
    return params, ret


@pytest.fixture
def clamp():
    return FunctionInfo(
        name="Clamp",
        return_type=T("int"),
        parameters=[P("value", "int"), P("min", "int"), P("max", "int")],
        location="Math/MathDefs.h:120",
        header_file="Math/MathDefs.h",
    )


@pytest.fixture
def emitter(model):
    return WrapperEmitter(model)


# --------------------------
# Wrapper names
# --------------------------

def test_wrapper_names(clamp):
    assert generate_wrapper_name(clamp) == "Clamp_int_int_int"
    assert generate_wrapper_name(FunctionInfo(name="Tick", return_type=T("void"))) == "Tick_void"


def test_wrapper_name_strips_type_punctuation():
    fn = MethodInfo(
        name="SetChildren",
        class_name="Node",
        return_type=T("void"),
        parameters=[P("nodes", "const Vector<SharedPtr<Node>>&"), P("mode", "Urho3D::CreateMode"), P("count", "unsigned int")],
    )
    assert generate_wrapper_name(fn) == "Node_SetChildren_VectorSharedPtrNode_Urho3DCreateMode_unsignedint"


def test_method_wrapper_names():
    static = MethodInfo(name="Bar", class_name="Foo", return_type=T("String"), kind=MethodKind.STATIC)
    method = MethodInfo(name="Clone", class_name="Node", return_type=T("SharedPtr<Node>"), is_const=True)
    assert generate_wrapper_name(static) == "Foo_Bar_void"
    assert generate_wrapper_name(method) == "Node_Clone_void"
    assert generate_wrapper_name(method, template_version=True) == "Node_Clone_void_template"
    # Template naming only applies to instance methods
    assert generate_wrapper_name(static, template_version=True) == "Foo_Bar_void"


# --------------------------
# Wrappers
# --------------------------

def test_free_function_wrapper(mapper, emitter, clamp):
    params, ret = convert(mapper, clamp)
    assert emitter.generate_wrapper(clamp, params, ret) == (
        "// Math/MathDefs.h:120\n"
        "static int Clamp_int_int_int(int value, int min, int max)\n"
        "{\n"
        "    int result = Clamp(value, min, max);\n"
        "    return result;\n"
        "}\n"
    )


def test_static_method_wrapper(mapper, emitter):
    fn = MethodInfo(name="Bar", class_name="Foo", return_type=T("String"), kind=MethodKind.STATIC)
    params, ret = convert(mapper, fn)
    assert emitter.generate_wrapper(fn, params, ret) == (
        "static String Foo_Bar_void()\n"
        "{\n"
        "    String result = Foo::Bar();\n"
        "    return result;\n"
        "}\n"
    )


def test_void_function_wrapper(mapper, emitter):
    fn = FunctionInfo(name="SetRandomSeed", return_type=T("void"), parameters=[P("seed", "unsigned")])
    params, ret = convert(mapper, fn)
    assert emitter.generate_wrapper(fn, params, ret) == (
        "static void SetRandomSeed_unsigned(unsigned seed)\n"
        "{\n"
        "    SetRandomSeed(seed);\n"
        "}\n"
    )


def test_instance_method_wrapper_with_guard_and_glue(mapper, emitter):
    fn = MethodInfo(
        name="SetNames",
        class_name="NavigationMesh",
        return_type=T("void"),
        parameters=[P("names", "const Vector<String>&"), P("count", "int")],
        location="Navigation/NavigationMesh.h:42",
        header_file="Navigation/NavigationMesh.h",
    )
    params, ret = convert(mapper, fn)
    assert emitter.generate_wrapper(fn, params, ret) == (
        "#ifdef URHO3D_NAVIGATION\n"
        "// Navigation/NavigationMesh.h:42\n"
        "static void NavigationMesh_SetNames_VectorString_int(NavigationMesh* ptr, CScriptArray* names_conv, int count)\n"
        "{\n"
        "    Vector<String> names = ArrayToVector<String>(names_conv);\n"
        "    ptr->SetNames(names, count);\n"
        "}\n"
        "#endif\n"
    )


def test_instance_method_guard_comes_from_class_header(mapper, emitter):
    # Declared in an inline header, but the class lives in a guarded one
    fn = MethodInfo(
        name="Build",
        class_name="NavigationMesh",
        return_type=T("bool"),
        header_file="Navigation/NavigationMesh.inl",
    )
    params, ret = convert(mapper, fn)
    assert emitter.generate_wrapper(fn, params, ret).startswith("#ifdef URHO3D_NAVIGATION\n")


def test_instance_method_wrapper_with_return_glue(mapper, emitter):
    fn = MethodInfo(name="Clone", class_name="Node", return_type=T("SharedPtr<Node>"), is_const=True)
    params, ret = convert(mapper, fn)
    assert emitter.generate_wrapper(fn, params, ret, template_version=True) == (
        "static Node* Node_Clone_void_template(Node* ptr)\n"
        "{\n"
        "    SharedPtr<Node> result = ptr->Clone();\n"
        "    return result.Detach();\n"
        "}\n"
    )


def test_array_return_wrapper(mapper, emitter):
    fn = FunctionInfo(name="GetArguments", return_type=T("const Vector<String>&"))
    params, ret = convert(mapper, fn)
    assert emitter.generate_wrapper(fn, params, ret) == (
        "static CScriptArray* GetArguments_void()\n"
        "{\n"
        "    const Vector<String>& result = GetArguments();\n"
        '    return VectorToArray<String>(result, "Array<String>");\n'
        "}\n"
    )


def test_wrapper_parameter_count_mismatch(emitter, clamp):
    with pytest.raises(ValueError):
        emitter.generate_wrapper(clamp, [ConvertedVariable("int")], ConvertedVariable("int"))


# --------------------------
# Registration expressions
# --------------------------

def test_function_pr(emitter, clamp):
    assert emitter.function_pr(clamp) == "asFUNCTIONPR(Clamp, (int, int, int), int)"


def test_static_function_pr(emitter):
    fn = MethodInfo(name="Bar", class_name="Foo", return_type=T("String"), kind=MethodKind.STATIC)
    assert emitter.function_pr(fn) == "asFUNCTIONPR(Foo::Bar, (), String)"
    assert emitter.registration_expression(fn) == "asFUNCTIONPR(Foo::Bar, (), String)"


def test_method_pr(emitter):
    fn = MethodInfo(
        name="SetPosition",
        class_name="Node",
        return_type=T("void"),
        parameters=[P("position", "const Vector3&")],
    )
    assert emitter.method_pr(fn) == "asMETHODPR(Node, SetPosition, (const Vector3&), void)"
    assert emitter.method_pr(fn, template_version=True) == "asMETHODPR(T, SetPosition, (const Vector3&), void)"


def test_const_method_pr(emitter):
    fn = MethodInfo(name="GetName", class_name="Node", return_type=T("const String&"), is_const=True)
    assert emitter.registration_expression(fn) == "asMETHODPR(Node, GetName, () const, const String&)"


def test_specialization_is_applied_to_parameter_types(emitter):
    fn = FunctionInfo(
        name="Equals",
        return_type=T("bool"),
        parameters=[P("lhs", "T"), P("rhs", "const T&"), P("Time", "float")],
        specialization={"T": "Vector3"},
    )
    assert join_param_types(fn) == "Vector3, const Vector3&, float"
    assert emitter.function_pr(fn) == "asFUNCTIONPR(Equals, (Vector3, const Vector3&, float), bool)"
