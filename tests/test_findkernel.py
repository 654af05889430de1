import struct

import pytest

from kdumpkit.errors import KSystemError
from kdumpkit.findkernel import FindKernel, is_kdump_kernel

RELEASE = "5.3.18-59-default"


def make_bzimage(path, relocatable=True):
    data = bytearray(0x300)
    data[0x202:0x206] = b"HdrS"
    data[0x206:0x208] = struct.pack("<H", 0x20C)
    data[0x234] = 1 if relocatable else 0
    path.write_bytes(bytes(data))
    return str(path)


def make_kernel(boot, version, config="", relocatable=True, name="vmlinuz"):
    image = make_bzimage(boot / f"{name}-{version}", relocatable)
    (boot / f"config-{version}").write_text(config)
    return image


def finder(boot, **kwargs):
    kwargs.setdefault("arch", "x86_64")
    kwargs.setdefault("kernel_release", RELEASE)
    return FindKernel(boot_dir=str(boot), **kwargs)


def test_is_kdump_kernel():
    assert is_kdump_kernel("/boot/vmlinuz-5.3.18-kdump") is True
    assert is_kdump_kernel("/boot/vmlinuz-5.3.18-default") is False


def test_find_for_version_prefers_first_image_name(tmp_path):
    make_bzimage(tmp_path / "vmlinux-1.0-default")
    make_bzimage(tmp_path / "vmlinuz-1.0-default")
    found = finder(tmp_path).find_for_version("1.0-default")
    assert found == str(tmp_path / "vmlinuz-1.0-default")


def test_find_for_version_falls_back(tmp_path):
    make_bzimage(tmp_path / "vmlinux-1.0-default")
    found = finder(tmp_path).find_for_version("1.0-default")
    assert found == str(tmp_path / "vmlinux-1.0-default")


def test_find_for_version_empty_and_missing(tmp_path):
    make_bzimage(tmp_path / "vmlinuz")
    fk = finder(tmp_path)
    assert fk.find_for_version("") == str(tmp_path / "vmlinuz")
    assert fk.find_for_version("9.9") is None


def test_suitable_relocatable(tmp_path):
    image = make_kernel(tmp_path, "1.0-default", "CONFIG_NR_CPUS=64\n")
    assert finder(tmp_path).suitable_for_kdump(image, True) is True


def test_not_relocatable_rejected(tmp_path):
    image = make_kernel(tmp_path, "1.0-default", relocatable=False)
    assert finder(tmp_path).suitable_for_kdump(image, False) is False


def test_kdump_kernel_skips_relocatable_check(tmp_path):
    image = make_kernel(tmp_path, "1.0-kdump", relocatable=False)
    assert finder(tmp_path).suitable_for_kdump(image, True) is True


@pytest.mark.parametrize("option", ["CONFIG_X86_XEN", "CONFIG_X86_64_XEN"])
def test_xen_rejected(tmp_path, option):
    image = make_kernel(tmp_path, "1.0-xen", f"{option}=y\n")
    assert finder(tmp_path).suitable_for_kdump(image, False) is False


def test_xen_not_set_accepted(tmp_path):
    image = make_kernel(tmp_path, "1.0-default", "# CONFIG_X86_XEN is not set\n")
    assert finder(tmp_path).suitable_for_kdump(image, False) is True


def test_many_cpus_only_rejected_when_strict(tmp_path):
    image = make_kernel(tmp_path, "1.0-default", "CONFIG_NR_CPUS=2048\n")
    fk = finder(tmp_path)
    assert fk.suitable_for_kdump(image, True) is False
    assert fk.suitable_for_kdump(image, False) is True


def test_cpu_limit_is_inclusive(tmp_path):
    image = make_kernel(tmp_path, "1.0-default", "CONFIG_NR_CPUS=1024\n")
    assert finder(tmp_path).suitable_for_kdump(image, True) is True


def test_realtime_rejected_when_strict(tmp_path):
    image = make_kernel(tmp_path, "1.0-rt", "CONFIG_PREEMPT_RT=y\n")
    fk = finder(tmp_path)
    assert fk.suitable_for_kdump(image, True) is False
    assert fk.suitable_for_kdump(image, False) is True


def test_missing_image_raises(tmp_path):
    with pytest.raises(KSystemError):
        finder(tmp_path).suitable_for_kdump(str(tmp_path / "nope"), True)


def test_auto_prefers_kdump_flavour(tmp_path):
    make_kernel(tmp_path, RELEASE)
    kdump = make_kernel(tmp_path, "5.3.18-59-kdump")
    assert finder(tmp_path).find_kernel_auto() == kdump


def test_auto_uses_running_kernel(tmp_path):
    running = make_kernel(tmp_path, RELEASE)
    assert finder(tmp_path).find_kernel_auto() == running


def test_auto_skips_unsuitable_kdump(tmp_path):
    make_kernel(tmp_path, "5.3.18-59-kdump", "CONFIG_PREEMPT_RT=y\n")
    running = make_kernel(tmp_path, RELEASE)
    assert finder(tmp_path).find_kernel_auto() == running


def test_auto_falls_back_to_unstrict(tmp_path):
    running = make_kernel(tmp_path, RELEASE, "CONFIG_NR_CPUS=4096\n")
    assert finder(tmp_path).find_kernel_auto() == running


def test_auto_nothing_found(tmp_path):
    assert finder(tmp_path).find_kernel_auto() is None


def test_get_paths_with_version(tmp_path):
    kernel = make_kernel(tmp_path, "1.0-default")
    paths = finder(tmp_path, kernelver="1.0-default").get_paths()
    assert paths == (kernel, str(tmp_path / "initrd-1.0-default-kdump"))


def test_get_paths_fadump(tmp_path):
    kernel = make_kernel(tmp_path, "1.0-default")
    paths = finder(tmp_path, kernelver="1.0-default", fadump=True).get_paths()
    assert paths == (kernel, str(tmp_path / "initrd-1.0-default"))


def test_get_paths_kdump_initrd(tmp_path):
    kernel = make_kernel(tmp_path, "1.0-kdump")
    paths = finder(tmp_path, kernelver="1.0-kdump").get_paths()
    assert paths == (kernel, str(tmp_path / "initrd-1.0-kdump"))


def test_get_paths_missing_version(tmp_path):
    assert finder(tmp_path, kernelver="2.0-default").get_paths() is None


def test_get_paths_unsuitable_version(tmp_path):
    make_kernel(tmp_path, "1.0-default", relocatable=False)
    assert finder(tmp_path, kernelver="1.0-default").get_paths() is None


def test_execute_prints_paths(tmp_path, capsys):
    kernel = make_kernel(tmp_path, RELEASE)
    fk = finder(tmp_path)
    fk.execute()
    out = capsys.readouterr().out
    initrd = str(tmp_path / f"initrd-{RELEASE}-kdump")
    assert out == f"Kernel:\t{kernel}\nInitrd:\t{initrd}\n"
    assert fk.error_code == 0


def test_execute_failure(tmp_path, capsys):
    fk = finder(tmp_path)
    fk.execute()
    assert fk.error_code == -1
    assert "No suitable kdump kernel found." in capsys.readouterr().err