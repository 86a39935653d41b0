"""Baryon programs shared by the test modules."""

MINIMAL_SOURCE = '''(bala myprog ( (desc "A test program") (run_docker (image "ubuntu:latest") (command "echo hello")) (param1 string (desc "A string param")) (outputs (output.txt txt ./workdir/output.txt)) ) )'''

ENUM_SOURCE = '''(bala myprog ( (param1 (enum ("A" "B" "C")) (desc "enum param")) ) )'''

ALIGN_SOURCE = '''
; Read alignment
(bala align (
  (desc "Align reads")
  (reads file (desc "Input reads"))
  (threads integer (default 4))
  (mode enum "fast" "slow" (desc "Mode"))
  (verbose boolean)
  (run_docker
    (image "biocontainers/bwa:latest")
    (command "bwa mem")
    (volumes (parent-folder /data))
    (env (THREADS threads))
    (arguments reads verbose mode "out.sam"))
  (outputs (aligned sam ./aligned.sam))
))
'''

NO_IMPLEMENTATION_SOURCE = '''(bala noop ( (desc "Does nothing") (name string) ))'''

NO_IMAGE_SOURCE = '''(bala broken ( (name string) (run_docker (command "echo hi")) ))'''
