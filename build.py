#!/usr/bin/env python3
"""
Build script for ID Card Studio
Creates a standalone desktop executable with PyInstaller
"""

import os
import sys
import shutil
import subprocess
import platform

APP_SCRIPT = os.path.join("id_card_studio", "__main__.py")
DIST_NAMES = {
    "Windows": "ID-Card-Studio.exe",
    "Darwin": "ID-Card-Studio",
    "Linux": "id-card-studio",
}


def run_command(cmd, description=""):
    """Run a command (argument list) and stop the build on failure"""
    print(f"🔨 {description or ' '.join(cmd)}")
    try:
        subprocess.run(cmd, check=True)
        print(f"✅ {description or 'Command'} completed successfully")
    except subprocess.CalledProcessError as e:
        print(f"❌ {description or 'Command'} failed with exit code {e.returncode}")
        sys.exit(1)


def clean_build():
    print("🧹 Cleaning previous build artifacts...")
    for dir_name in ("build", "dist", "package"):
        if os.path.exists(dir_name):
            shutil.rmtree(dir_name)
            print(f"   Removed {dir_name}/")
    for root, dirs, _ in os.walk("."):
        for d in dirs:
            if d == "__pycache__":
                shutil.rmtree(os.path.join(root, d), ignore_errors=True)
    print("✅ Cleanup completed")


def install_dependencies():
    print("📦 Installing dependencies...")
    run_command([sys.executable, "-m", "pip", "install", "-e", "."], "Installing ID Card Studio")
    run_command([sys.executable, "-m", "pip", "install", "pyinstaller"], "Installing PyInstaller")


def create_icon():
    """Draw a small card-with-photo icon if none exists"""
    if os.path.exists("icon.ico"):
        print("ℹ️  Icon already exists")
        return
    print("🎨 Creating default icon...")
    from PIL import Image, ImageDraw

    img = Image.new("RGBA", (64, 64), (0, 0, 0, 0))
    draw = ImageDraw.Draw(img)
    # Portrait card with the photo box on the lower part
    draw.rounded_rectangle([14, 4, 50, 60], radius=4, fill=(255, 255, 255, 255), outline=(40, 40, 40, 255), width=2)
    draw.rectangle([20, 10, 44, 14], fill=(70, 130, 180, 255))
    draw.rounded_rectangle([16, 22, 48, 58], radius=3, fill=(200, 210, 220, 255))
    draw.ellipse([26, 28, 38, 40], fill=(90, 90, 90, 255))
    draw.pieslice([21, 40, 43, 64], 180, 360, fill=(90, 90, 90, 255))
    img.save("icon.ico", format="ICO", sizes=[(32, 32), (64, 64)])
    print("✅ Default icon created")


def build_executable():
    system = platform.system()
    print(f"🚀 Building executable for {system}...")
    sep = ";" if system == "Windows" else ":"
    cmd = [
        sys.executable, "-m", "PyInstaller", "--clean", "--onefile",
        "--name", os.path.splitext(DIST_NAMES.get(system, "id-card-studio"))[0],
        "--add-data", f"README.md{sep}.",
        "--hidden-import=PIL._tkinter_finder",
        "--collect-all", "ttkbootstrap",
        "--collect-submodules", "id_card_studio",
    ]
    if system in ("Windows", "Darwin"):
        cmd.append("--windowed")
    if system == "Windows":
        create_icon()
        cmd.append("--icon=icon.ico")
    cmd.append(APP_SCRIPT)
    run_command(cmd, f"Building {system} executable")


def create_package():
    system = platform.system()
    exe_name = DIST_NAMES.get(system, "id-card-studio")
    src = os.path.join("dist", exe_name)
    if not os.path.exists(src):
        print(f"❌ Executable not found: {src}")
        return

    package_dir = "package"
    os.makedirs(package_dir, exist_ok=True)
    shutil.copy(src, package_dir)
    if system != "Windows":
        os.chmod(os.path.join(package_dir, exe_name), 0o755)
    for doc in ("README.md", "LICENSE"):
        if os.path.exists(doc):
            shutil.copy(doc, package_dir)

    print(f"✅ Package created in {package_dir}/")
    for item in os.listdir(package_dir):
        size = os.path.getsize(os.path.join(package_dir, item))
        print(f"   {item} ({size:,} bytes)")


def main():
    print("🏗️  ID Card Studio Build Script")
    print("=" * 40)

    if not os.path.exists(APP_SCRIPT):
        print(f"❌ {APP_SCRIPT} not found. Please run this script from the project root.")
        sys.exit(1)

    try:
        clean_build()
        install_dependencies()
        build_executable()
        create_package()
        print("\n🎉 Build completed successfully!")
    except KeyboardInterrupt:
        print("\n❌ Build interrupted by user")
        sys.exit(1)


if __name__ == "__main__":
    main()
