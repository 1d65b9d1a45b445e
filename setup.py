from setuptools import setup, Command


class RunTests(Command):
  user_options = []

  def initialize_options(self):
    pass

  def finalize_options(self):
    pass

  def run(self):
    import sys, subprocess
    errno = subprocess.call([sys.executable, '-m', 'pytest', 'tests'])
    raise SystemExit(errno)


setup(
    name='mayi',
    version='0.1.0',
    description='rules engine for the May I contract rummy card game',
    license='MIT',
    packages=['mayi', 'mayi.bin', 'mayi.players'],
    python_requires='>=3.7',
    install_requires=['click'],
    extras_require={'test': ['pytest']},
    zip_safe=True,
    cmdclass={'test': RunTests},
    entry_points = {
        'console_scripts': [
            'mayi = mayi.bin.play:cli'
        ]
    }
)
