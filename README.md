# kdumpkit

Helpers for preparing a Linux system for kernel crash dumps (kdump).

kdumpkit can:

- find a kernel image in `/boot` that is suitable as a kdump capture kernel,
  together with the matching initrd path;
- identify a kernel image (x86 bzImage, ELF, gzipped ELF, S/390, Aarch64) and
  tell whether it is relocatable;
- read kernel configurations, either from a `config-<version>` file (plain or
  gzip-compressed) or from the IKCONFIG data embedded in a kernel image;
- rewrite a `multipath.conf` so that every device is blacklisted except the
  entries given as exceptions.

It has no dependencies outside the standard library.

## Installation

```
pip install .
```

## Command line

```
kdumpkit [global options] <subcommand> [subcommand options] [arguments]
```

Global options (they must come before the subcommand):

- `--help`, `-h` – print help for all options and subcommands to stderr
- `--version`, `-v` – print version and feature information to stderr and exit
- `--background`, `-b` – detach from the terminal before running the subcommand
- `--debug`, `-D` – print debugging output to stderr
- `--logfile=<STRING>`, `-L` – together with `--debug`, append debugging
  output to this file instead
- `--configfile=<STRING>`, `-F` – configuration file name (default
  `/etc/sysconfig/kdump`)
- `--cmdline=<STRING>`, `-C` – file with kernel parameters

### find_kernel

```
kdumpkit find_kernel
```

Looks in `/boot` for a capture kernel, derived from the running kernel
release. For a release `BASE-FLAVOUR` the candidates are tried in this order:
`BASE-kdump`, `kdump`, the running release, `BASE-default` and the plain
image name, each requiring a relocatable, non-Xen kernel with at most 1024
CPUs on x86 and without `CONFIG_PREEMPT_RT`; then the running release,
`BASE-default` and the plain image name again with only the relocatable and
non-Xen checks. The image names tried depend on the architecture (`vmlinuz`
and `vmlinux` on x86, `Image` on aarch64, `image` on s390x, `vmlinux`
elsewhere). It prints

```
Kernel:	/boot/vmlinuz-6.4.0-default
Initrd:	/boot/initrd-6.4.0-default-kdump
```

or "No suitable kdump kernel found." and a non-zero exit status.

### identify_kernel

```
kdumpkit identify_kernel -t -r /boot/vmlinuz
```

`-t` / `--type` prints the kernel type (`x86`, `ELF`, `ELF gzip`, `S390` or
`Aarch64`); `-r` / `--relocatable` prints "Relocatable" or "Not relocatable".
At least one of the two flags and exactly one image are required. The exit
status is 2 when the kernel is not relocatable.

### multipath

```
kdumpkit multipath 'wwid "example-wwid-0001"' < /etc/multipath.conf
```

Reads `multipath.conf` from standard input and writes it to standard output
with a `blacklist` section containing `wwid ".*"` and a
`blacklist_exceptions` section containing each argument as a line. Where such
sections already exist, the lines are added at their start; otherwise the
sections are put at the beginning of the file.

On any error the message is printed to stderr and the exit status is
non-zero.

## Library use

```python
from kdumpkit.kconfig import Kconfig, Tristate

config = Kconfig()
config.read_from_config("/boot/config-6.4.0-default")
value = config.get("CONFIG_RELOCATABLE")
print(value.tristate is Tristate.ON)
```

```python
from kdumpkit.kernelpath import KernelPath

path = KernelPath("/boot/vmlinuz-6.4.0-default", arch="x86_64")
print(path.version)              # 6.4.0-default
print(path.config_path())        # /boot/config-6.4.0-default
print(path.initrd_path(False))   # /boot/initrd-6.4.0-default-kdump
```

```python
from kdumpkit.kerneltool import KernelTool

with KernelTool("/boot/vmlinuz-6.4.0-default") as tool:
    print(tool.kernel_type(), tool.is_relocatable())
    kconfig = tool.retrieve_kernel_config()
```

Other useful pieces:

- `kdumpkit.kconfig.parse_kconfig_line` parses a single `.config` line into
  a name and a `KconfigValue`;
- `kdumpkit.ikconfig.extract_ikconfig` and `extract_from_bzimage` return the
  configuration text embedded in ELF and bzImage kernels;
- `kdumpkit.multipath.tokenize` splits a `multipath.conf` line into tokens;
- `kdumpkit.multiplexio.MultiplexIO` waits for events on several file
  descriptors with `poll`.

Errors are raised as `kdumpkit.errors.KError` (and its subclasses
`KSystemError` and `KGaiError`).

## What it does not do

- The file named by `--configfile` and `--cmdline` is not read. In
  particular `find_kernel` cannot be pointed at a specific kernel version or
  told to prepare for firmware-assisted dump from the command line; it always
  auto-detects. Both are available as `FindKernel(kernelver=..., fadump=...)`
  in library use.
- There are no subcommands for saving or deleting dumps, printing dump
  targets, reading vmcore information or blinking keyboard LEDs.

## Running the tests

```
pip install .[test]
pytest
```