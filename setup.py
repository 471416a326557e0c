from setuptools import setup

setup(
    name='queit-secure-routing',
    version='1.0',
    description='Obfuscated in-app navigation URLs backed by an in-memory code store.',
    python_requires='>=3.10',
    py_modules=[
        'app',
        'code_store',
        'config',
        'core_logic',
        'fingerprint',
        'limiter',
        'middleware',
        'models',
        'navigation',
        'router',
        'secure_paths',
        'security',
        'user_lookup',
    ],
    install_requires=[
        'fastapi',
        'starlette',
        'pydantic>=2',
        'slowapi',
        'jinja2',
        'httpx',
        'uvicorn',
    ],
    extras_require={
        'test': ['pytest', 'respx', 'httpx'],
    },
)
