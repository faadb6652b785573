"""The ``sherpa`` command line client and its policy, scale and system commands."""